"""JSON document store with a hierarchical, Firestore-like namespace.

Documents live at ``{root}/{collection}/{doc_id}.json`` where ``collection``
is a slash-separated path such as ``users/u1/chatSessions``. A document may
own subcollections stored in the directory named after it
(``users/u1/chatSessions/s1/messages``).

Contract:
- Inputs: Collection paths, document ids, pydantic models
- Outputs: Validated pydantic models
- Side Effects: Writes JSON files atomically (tmp + rename)
"""

import logging
import re
import shutil
import uuid
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_\-.@]+$")


class MalformedDocumentError(ValueError):
    """Raised when a stored document fails validation against its model."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Malformed document {path}: {reason}")
        self.path = path


def new_document_id() -> str:
    """Generate a 20 character document id."""
    return uuid.uuid4().hex[:20]


class DocumentStore:
    """File-backed document store.

    Single-document writes are atomic. Cross-document consistency (for example
    session summary fields vs. the message log) is the caller's concern.
    """

    def __init__(self, root_dir: Path) -> None:
        """Initialize with root directory.

        Args:
            root_dir: Directory that holds every collection (usually the state dir)
        """
        self.root_dir = Path(root_dir)
        self.root_dir.mkdir(parents=True, exist_ok=True)

    # --- Paths ---

    def collection_dir(self, collection: str) -> Path:
        """Resolve a collection path to its directory.

        Raises:
            ValueError: If a path segment is empty or contains illegal characters
        """
        segments = collection.strip("/").split("/")
        for segment in segments:
            if not segment or segment in (".", "..") or not _SEGMENT_RE.match(segment):
                raise ValueError(f"Invalid collection path: {collection!r}")
        return self.root_dir.joinpath(*segments)

    def document_path(self, collection: str, doc_id: str) -> Path:
        """Resolve the JSON file path for a document."""
        if not doc_id or doc_id in (".", "..") or not _SEGMENT_RE.match(doc_id):
            raise ValueError(f"Invalid document id: {doc_id!r}")
        return self.collection_dir(collection) / f"{doc_id}.json"

    # --- Documents ---

    def write(self, collection: str, doc_id: str, document: BaseModel) -> None:
        """Write a document atomically, replacing any previous version."""
        path = self.document_path(collection, doc_id)
        path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(document.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        tmp_path.replace(path)

    def read(self, collection: str, doc_id: str, model: type[ModelT]) -> ModelT | None:
        """Read and validate a document.

        Returns:
            The validated model, or None if the document does not exist

        Raises:
            MalformedDocumentError: If the stored JSON does not match the model
        """
        path = self.document_path(collection, doc_id)
        if not path.exists():
            return None
        return self._load(path, model)

    def exists(self, collection: str, doc_id: str) -> bool:
        """Check whether a document exists."""
        return self.document_path(collection, doc_id).exists()

    def list_documents(self, collection: str, model: type[ModelT]) -> list[ModelT]:
        """Load every document in a collection.

        Malformed documents are rejected and skipped with a warning.
        """
        directory = self.collection_dir(collection)
        if not directory.is_dir():
            return []

        documents: list[ModelT] = []
        for path in sorted(directory.glob("*.json")):
            try:
                documents.append(self._load(path, model))
            except MalformedDocumentError as e:
                logger.warning(f"Skipping {e}")
        return documents

    def count(self, collection: str) -> int:
        """Count documents in a collection without validating them."""
        directory = self.collection_dir(collection)
        if not directory.is_dir():
            return 0
        return sum(1 for _ in directory.glob("*.json"))

    def list_ids(self, collection: str) -> list[str]:
        """List document ids in a collection."""
        directory = self.collection_dir(collection)
        if not directory.is_dir():
            return []
        return sorted(path.stem for path in directory.glob("*.json"))

    def list_children(self, collection: str) -> list[str]:
        """List child directory names below a collection path.

        Used to enumerate owners such as user ids under ``users``.
        """
        directory = self.collection_dir(collection)
        if not directory.is_dir():
            return []
        return sorted(child.name for child in directory.iterdir() if child.is_dir())

    def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document and its subcollections.

        Returns:
            True if the document existed
        """
        path = self.document_path(collection, doc_id)
        subcollections = path.with_suffix("")
        if subcollections.is_dir():
            shutil.rmtree(subcollections)

        if not path.exists():
            return False
        path.unlink()
        return True

    def delete_collection(self, collection: str) -> int:
        """Delete every document in a collection.

        Returns:
            Number of documents removed
        """
        directory = self.collection_dir(collection)
        if not directory.is_dir():
            return 0
        removed = self.count(collection)
        shutil.rmtree(directory)
        return removed

    # --- Helpers ---

    def _load(self, path: Path, model: type[ModelT]) -> ModelT:
        try:
            return model.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as e:
            raise MalformedDocumentError(path, f"{e.error_count()} validation error(s)") from e
