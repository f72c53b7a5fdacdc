"""
Splitting of rendered manifest text into documents and decoding of those documents into generic Kubernetes objects.
"""

from collections.abc import Sequence
from dataclasses import dataclass
import json
from typing import Any, NewType

import yaml

from kubessa.engine.errors import DecodeError

Manifest = NewType("Manifest", dict[str, Any])
""" A decoded Kubernetes object of any type. """

DOCUMENT_SEPARATOR = "\n---\n"
""" Separator between documents of a multi-document manifest. """


@dataclass(frozen=True)
class GroupVersionKind:
    """
    Identifies the type of a Kubernetes object. The core API group is represented by an empty string.
    """

    group: str
    version: str
    kind: str

    @staticmethod
    def from_api_version(api_version: str, kind: str) -> "GroupVersionKind":
        group, _, version = api_version.rpartition("/")
        return GroupVersionKind(group, version, kind)

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def __str__(self) -> str:
        return f"{self.api_version}, Kind={self.kind}"


KUSTOMIZATION = GroupVersionKind("kustomize.config.k8s.io", "v1beta1", "Kustomization")
""" Documents of this kind are never applied, they trigger a Kustomize build instead. """


@dataclass
class ManifestDocument:
    """
    A single decoded Kubernetes object and the text it was decoded from.
    """

    gvk: GroupVersionKind
    body: Manifest
    raw: str

    position: str
    """
    The location of the document in the source, for diagnostics. Documents produced by a Kustomize expansion are
    located relative to the Kustomization document they replace (e.g. `#1/3`).
    """

    expanded_documents: Sequence[str] | None = None
    """
    If the document was produced by a Kustomize expansion, the full list of documents produced by that expansion.
    """

    @property
    def name(self) -> str:
        return self.metadata.get("name") or ""

    @property
    def namespace(self) -> str:
        return self.metadata.get("namespace") or ""

    @property
    def metadata(self) -> dict[str, Any]:
        metadata = self.body.get("metadata")
        return metadata if isinstance(metadata, dict) else {}

    @property
    def is_kustomization(self) -> bool:
        return self.gvk == KUSTOMIZATION

    @property
    def reference(self) -> str:
        """
        A human readable reference to the object, e.g. `apps/v1/Deployment default/web`.
        """

        name = f"{self.namespace}/{self.name}" if self.namespace else self.name
        return f"{self.gvk.api_version}/{self.gvk.kind} {name or '<unnamed>'}"

    def set_namespace(self, namespace: str | None) -> None:
        """
        Set the namespace of the object. Passing `None` removes the namespace.
        """

        if namespace is None:
            if isinstance(self.body.get("metadata"), dict):
                self.body["metadata"].pop("namespace", None)
            return
        if not isinstance(self.body.get("metadata"), dict):
            self.body["metadata"] = {}
        self.body["metadata"]["namespace"] = namespace

    def to_json(self) -> str:
        """
        Serialize the object to its JSON wire encoding.
        """

        return json.dumps(self.body, separators=(",", ":"), default=str)


def split_documents(text: str) -> list[str]:
    """
    Split a multi-document manifest on the `DOCUMENT_SEPARATOR`. Spans that contain only whitespace or bare `---`
    markers (for example before a leading separator) are dropped.
    """

    return [span for span in text.split(DOCUMENT_SEPARATOR) if not _is_empty(span)]


def _is_empty(span: str) -> bool:
    return all(line.strip() in ("", "---") for line in span.splitlines())


def decode_document(raw: str, position: str = "#0") -> ManifestDocument:
    """
    Decode a single document into a generic Kubernetes object. The type of the object does not need to be known.

    A span may still carry a bare `---` marker at its start or end (e.g. a file that ends with `---` and no final
    newline). Such markers only delimit empty YAML documents, which are ignored.

    Raises:
        DecodeError: If the document is not valid YAML, not exactly one object, not a mapping, or lacks the
            `apiVersion` or `kind` field.
    """

    try:
        objects = [obj for obj in yaml.safe_load_all(raw) if obj is not None]
    except yaml.YAMLError as exc:
        raise DecodeError(f"Invalid YAML: {exc}", position=position) from exc

    if not objects:
        raise DecodeError("Document contains no object", position=position)
    if len(objects) > 1:
        raise DecodeError(f"Expected a single object, got {len(objects)}", position=position)

    body = objects[0]
    if not isinstance(body, dict):
        raise DecodeError(f"Expected a mapping, got {type(body).__name__}", position=position)

    api_version = body.get("apiVersion")
    kind = body.get("kind")
    if not isinstance(api_version, str) or not api_version:
        raise DecodeError("Object 'apiVersion' is missing", position=position)
    if not isinstance(kind, str) or not kind:
        raise DecodeError("Object 'kind' is missing", position=position)

    return ManifestDocument(
        gvk=GroupVersionKind.from_api_version(api_version, kind),
        body=Manifest(body),
        raw=raw,
        position=position,
    )
