import os
from pathlib import Path

from loguru import logger
import typer

from kubessa.config import ConfigError, EngineConfig
from kubessa.engine import ManifestLoader
from kubessa.engine.kustomize import KustomizeExpander
from kubessa.engine.templating import TemplateRenderer


def load_config(file: Path | None, kubeconfig: str | None = None) -> EngineConfig:
    """
    Load the run configuration from the environment, exiting with status 1 if it is incomplete.
    """

    try:
        config = EngineConfig.from_environ(os.environ, manifest_file=file, kubeconfig=kubeconfig)
    except ConfigError as exc:
        logger.error("{}", exc)
        raise typer.Exit(1)

    if not config.manifest_file.is_file():
        logger.error("Manifest file '{}' does not exist", config.manifest_file)
        raise typer.Exit(1)

    return config


def new_loader(config: EngineConfig) -> ManifestLoader:
    return ManifestLoader(
        renderer=TemplateRenderer(config.template_context),
        expander=KustomizeExpander(config.kustomize_command),
    )
