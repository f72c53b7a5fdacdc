from pathlib import Path

from loguru import logger
from typer import Exit, Option
import yaml

from kubessa.engine.errors import EngineError

from . import app
from ._common import load_config, new_loader


@app.command()
def render(
    file: Path = Option(None, "--file", "-f", help="The manifest file to render. Defaults to $PLUGIN_YAML."),
) -> None:
    """
    Render the manifest file and expand Kustomize overlays, printing the documents that would be applied.
    The cluster is not contacted.
    """

    config = load_config(file)
    count = 0
    try:
        for document in new_loader(config).load(config.manifest_file):
            print("---")
            print(yaml.safe_dump(document.body, sort_keys=False), end="")
            count += 1
    except EngineError as exc:
        logger.error("Failed to render '{}' after {} document(s): {}", config.manifest_file, count, exc)
        raise Exit(1)

    logger.info("Rendered {} document(s) from '{}'", count, config.manifest_file)
