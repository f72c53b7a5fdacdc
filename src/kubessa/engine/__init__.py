"""
The apply engine renders a manifest file, splits it into documents, expands Kustomize overlays and applies every
resulting object to the cluster with server-side apply, in source order. The first error stops the run.

Kustomization documents are expanded in place: the documents produced by the build take the position of the
Kustomization document and may themselves contain further Kustomization documents.
"""

from collections import deque
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from kubessa.engine.documents import ManifestDocument, decode_document, split_documents
from kubessa.engine.errors import EngineError
from kubessa.engine.executor import ApplyExecutor
from kubessa.engine.kustomize import KustomizeExpander
from kubessa.engine.resolver import ResourceResolver
from kubessa.engine.templating import TemplateRenderer

__all__ = [
    "ApplyEngine",
    "ApplyOutcome",
    "ManifestLoader",
]


@dataclass
class _Pending:
    raw: str
    position: str
    expanded_documents: Sequence[str] | None = None


@dataclass
class ApplyOutcome:
    """
    The result of a run: the number of documents that were applied and, if the run failed, the error that stopped it.
    """

    applied: int = 0
    error: EngineError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ManifestLoader:
    """
    Turns a manifest file into the sequence of concrete documents to apply.
    """

    def __init__(self, renderer: TemplateRenderer, expander: KustomizeExpander) -> None:
        self.renderer = renderer
        self.expander = expander

    def load(self, file: Path) -> Iterator[ManifestDocument]:
        """
        Render *file* and yield its documents in order. Documents are produced lazily, thus a Kustomize build only
        happens once all documents preceding the Kustomization document have been consumed.

        Raises:
            EngineError: If rendering, decoding or a Kustomize build fails.
        """

        text = self.renderer.render(file.read_text(), name=str(file))
        return self.documents(text, file.parent)

    def documents(self, text: str, directory: Path) -> Iterator[ManifestDocument]:
        """
        Yield the documents of the rendered *text*. Kustomization documents are replaced by the output of building
        the overlay in *directory*.
        """

        queue = deque(_Pending(raw, f"#{idx}") for idx, raw in enumerate(split_documents(text)))

        while queue:
            pending = queue.popleft()
            try:
                document = decode_document(pending.raw, pending.position)
                if not document.is_kustomization:
                    document.expanded_documents = pending.expanded_documents
                    yield document
                    continue

                logger.info("Detected Kustomization in document {}, building '{}'", pending.position, directory)
                expanded = split_documents(self.expander.expand(directory))
            except EngineError as exc:
                if exc.expanded_documents is None:
                    exc.expanded_documents = pending.expanded_documents
                raise

            logger.info("Kustomization in document {} produced {} document(s)", pending.position, len(expanded))
            queue.extendleft(
                reversed([_Pending(raw, f"{pending.position}/{idx}", expanded) for idx, raw in enumerate(expanded)])
            )


class ApplyEngine:
    """
    Applies the documents of a manifest file to the cluster.
    """

    def __init__(self, loader: ManifestLoader, resolver: ResourceResolver, executor: ApplyExecutor) -> None:
        self.loader = loader
        self.resolver = resolver
        self.executor = executor

    def run(self, file: Path) -> ApplyOutcome:
        """
        Apply all documents in *file*. Never raises an `EngineError`, instead the first error is recorded in the
        returned outcome together with the number of documents applied before it.
        """

        outcome = ApplyOutcome()
        try:
            for document in self.loader.load(file):
                self.apply(document, outcome)
        except EngineError as exc:
            outcome.error = exc
            logger.debug("Run failed after {} applied document(s): {}", outcome.applied, exc)
        return outcome

    def apply(self, document: ManifestDocument, outcome: ApplyOutcome) -> None:
        """
        Resolve and apply a single document, incrementing `outcome.applied` on success.
        """

        try:
            mapping = self.resolver.resolve(document.gvk)
            logger.info("Applying document {} ({})", document.position, document.reference)
            self.executor.apply(document, mapping)
        except EngineError as exc:
            if exc.expanded_documents is None:
                exc.expanded_documents = document.expanded_documents
            raise
        outcome.applied += 1
