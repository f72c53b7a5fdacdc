from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
import shlex

from kubessa.engine.context import TemplateContext, build_template_context
from kubessa.engine.executor import FIELD_MANAGER
from kubessa.engine.kustomize import DEFAULT_KUSTOMIZE_COMMAND

MANIFEST_FILE_VAR = "PLUGIN_YAML"
KUBECONFIG_VAR = "PLUGIN_KUBECONFIG"
KUSTOMIZE_COMMAND_VAR = "PLUGIN_KUSTOMIZE_COMMAND"


class ConfigError(Exception):
    pass


@dataclass
class EngineConfig:
    """
    Configuration for a single run, constructed once at startup from the process environment.
    """

    manifest_file: Path
    """ The manifest file to render and apply. """

    template_context: TemplateContext
    """ The variables available to the manifest template. """

    kubeconfig: str | None = None
    """ The content of a kubeconfig file. If not set, the in-cluster configuration is used. """

    field_manager: str = FIELD_MANAGER
    kustomize_command: list[str] = field(default_factory=lambda: list(DEFAULT_KUSTOMIZE_COMMAND))

    @staticmethod
    def from_environ(
        environ: Mapping[str, str],
        manifest_file: Path | None = None,
        kubeconfig: str | None = None,
    ) -> "EngineConfig":
        """
        Load the configuration from the environment. The *manifest_file* and *kubeconfig* arguments take precedence
        over their environment variables.

        Raises:
            ConfigError: If no manifest file is configured.
        """

        if manifest_file is None:
            if not environ.get(MANIFEST_FILE_VAR):
                raise ConfigError(f"No manifest file specified, set {MANIFEST_FILE_VAR}")
            manifest_file = Path(environ[MANIFEST_FILE_VAR])

        if kubeconfig is None:
            kubeconfig = environ.get(KUBECONFIG_VAR) or None

        config = EngineConfig(
            manifest_file=manifest_file,
            template_context=build_template_context(environ),
            kubeconfig=kubeconfig,
        )
        if command := environ.get(KUSTOMIZE_COMMAND_VAR):
            config.kustomize_command = shlex.split(command)
        return config
