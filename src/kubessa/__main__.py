from kubessa.commands import app

if __name__ == "__main__":
    app()
