from pathlib import Path

from loguru import logger
from typer import Exit, Option

from kubessa.engine import ApplyEngine, ApplyOutcome
from kubessa.engine.errors import DiscoveryError
from kubessa.engine.executor import ApplyExecutor
from kubessa.engine.resolver import ResourceResolver
from kubessa.tools.kubeconfig import ConnectionConfigError, connect

from . import app
from ._common import load_config, new_loader


@app.command()
def apply(
    file: Path = Option(None, "--file", "-f", help="The manifest file to apply. Defaults to $PLUGIN_YAML."),
    kubeconfig: str = Option(
        None,
        help="The content of the kubeconfig to use. Defaults to $PLUGIN_KUBECONFIG. If neither is set, the "
        "in-cluster configuration is used.",
        show_default=False,
    ),
) -> None:
    """
    Render the manifest file and server-side apply all of its documents to the cluster.
    """

    config = load_config(file, kubeconfig)

    try:
        with connect(config.kubeconfig) as connection:
            logger.info(
                "Initializing {} server-side apply of '{}'",
                "in-cluster" if connection.in_cluster else "out-of-cluster",
                config.manifest_file,
            )
            try:
                client = connection.dynamic_client()
            except DiscoveryError as exc:
                outcome = ApplyOutcome(error=exc)
            else:
                engine = ApplyEngine(
                    loader=new_loader(config),
                    resolver=ResourceResolver(client),
                    executor=ApplyExecutor(client, field_manager=config.field_manager),
                )
                outcome = engine.run(config.manifest_file)
    except ConnectionConfigError as exc:
        logger.error("{}", exc)
        raise Exit(1)

    if outcome.error is not None:
        logger.error("Failed to apply changes after {} document(s): {}", outcome.applied, outcome.error)
        if outcome.error.expanded_documents is not None:
            logger.error(
                "The error occurred in the output of a Kustomize build:\n{}",
                "\n---\n".join(outcome.error.expanded_documents),
            )
        raise Exit(1)

    logger.info("Finished applying {} document(s)", outcome.applied)
    print(f"Applied {outcome.applied} document(s).")
