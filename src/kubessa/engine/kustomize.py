from collections.abc import Sequence
from pathlib import Path
import shlex
import subprocess

from loguru import logger

from kubessa.engine.errors import ExpansionError

DEFAULT_KUSTOMIZE_COMMAND = ("kustomize", "build")
""" The command to build a Kustomize overlay. The overlay directory is appended as the last argument. """


class KustomizeExpander:
    """
    Builds Kustomize overlays into a multi-document YAML stream.
    """

    def __init__(self, command: Sequence[str] = DEFAULT_KUSTOMIZE_COMMAND) -> None:
        if not command:
            raise ValueError("Kustomize command must not be empty")
        self.command = list(command)

    def expand(self, directory: Path) -> str:
        """
        Build the Kustomize overlay in the given directory with default build options.

        Returns:
            The built resources as a multi-document YAML string.
        Raises:
            ExpansionError: If the build fails, e.g. because the directory contains no kustomization, a base is
                missing or the overlay graph is invalid.
        """

        command = [*self.command, str(directory)]
        logger.debug("Building Kustomize overlay: $ {}", " ".join(map(shlex.quote, command)))

        try:
            result = subprocess.run(command, capture_output=True, text=True)
        except FileNotFoundError as exc:
            raise ExpansionError(
                f"Kustomize executable '{self.command[0]}' not found", directory=str(directory)
            ) from exc

        if result.returncode != 0:
            raise ExpansionError(
                f"Kustomize build of '{directory}' failed with status code {result.returncode}",
                directory=str(directory),
                stderr=result.stderr,
            )

        return result.stdout
