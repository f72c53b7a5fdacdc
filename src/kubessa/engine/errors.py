"""
Errors raised by the stages of the apply engine. Every stage fails fast; the engine records the first error it
encounters in the :class:`~kubessa.engine.ApplyOutcome` and stops.
"""

from dataclasses import dataclass, field
import textwrap
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from kubessa.engine.documents import GroupVersionKind


@dataclass
class EngineError(Exception):
    """
    Base class for errors raised while rendering, expanding, resolving or applying manifests.
    """

    message: str

    expanded_documents: Sequence[str] | None = field(default=None, kw_only=True)
    """
    If the error occurred on a document that was produced by a Kustomize expansion, this contains the full list of
    documents produced by that expansion.
    """

    def __str__(self) -> str:
        if "\n" in self.message:
            return "\n\n" + textwrap.indent(self.message, "  ")
        return self.message


@dataclass
class TemplateError(EngineError):
    """
    The manifest source could not be rendered, either because it references a variable that is not defined or
    because the template is malformed.
    """

    variable: str | None = None


@dataclass
class DecodeError(EngineError):
    """
    A document is not valid YAML or lacks the `apiVersion` / `kind` envelope fields.
    """

    position: str | None = None

    def __str__(self) -> str:
        if self.position is None:
            return super().__str__()
        return f"Document {self.position}: {super().__str__()}"


@dataclass
class ExpansionError(EngineError):
    """
    The Kustomize build of an overlay directory failed.
    """

    directory: str | None = None
    stderr: str | None = None

    def __str__(self) -> str:
        message = super().__str__()
        if self.stderr:
            message += "\n" + textwrap.indent(self.stderr.rstrip(), "  ")
        return message


@dataclass
class DiscoveryError(EngineError):
    """
    The API server could not be queried for its resource types.
    """


@dataclass
class UnknownResourceError(EngineError):
    """
    The API server does not serve a resource type for the document's group, version and kind.
    """

    gvk: "GroupVersionKind | None" = None


@dataclass
class ApplyError(EngineError):
    """
    The API server rejected the server-side apply patch of a document.
    """

    reference: str | None = None
