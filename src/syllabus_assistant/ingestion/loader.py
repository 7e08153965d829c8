"""
Loader Module - Read and cache the source syllabus document.
============================================================

The syllabus is the only persistent input. It is read-only, so any
number of requests may share one cached copy. The cache is keyed on the
file's (mtime, size) signature and is replaced wholesale whenever that
signature changes or the file disappears; a cached document is never
patched in place.
"""

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from syllabus_assistant.ingestion.sectionizer import Sectionizer
from syllabus_assistant.shared.logging import get_logger
from syllabus_assistant.shared.schemas import Section
from syllabus_assistant.shared.utils import compute_hash, read_text_safe

logger = get_logger(__name__)


@dataclass(frozen=True)
class LoadedDocument:
    """One immutable version of the source document."""

    text: str
    sections: tuple[Section, ...]
    version: str
    signature: Optional[tuple[int, int]] = None

    @property
    def is_empty(self) -> bool:
        return not self.text


EMPTY_DOCUMENT = LoadedDocument(text="", sections=(), version="empty")


class DocumentStore:
    """
    Serves the current version of the syllabus and its sections.

    Example:
        >>> store = DocumentStore(Path("data/syllabus.md"))
        >>> doc = store.load()
        >>> print(doc.version, len(doc.sections))
    """

    def __init__(
        self,
        path: Path,
        sectionizer: Optional[Sectionizer] = None,
        cache_enabled: bool = True,
    ):
        self.path = Path(path)
        self.sectionizer = sectionizer or Sectionizer()
        self.cache_enabled = cache_enabled

        self._cached: Optional[LoadedDocument] = None
        # Guards the swap of _cached only; readers get immutable snapshots
        self._lock = threading.Lock()

    def _signature(self) -> Optional[tuple[int, int]]:
        try:
            stat = self.path.stat()
        except OSError:
            return None
        return (stat.st_mtime_ns, stat.st_size)

    def load(self) -> LoadedDocument:
        """
        Get the current document version.

        Returns:
            LoadedDocument (EMPTY_DOCUMENT if the file is missing or unreadable)
        """
        signature = self._signature()
        if signature is None:
            if self._cached is not None:
                logger.info(f"Source document {self.path} disappeared; cache dropped")
                self.invalidate()
            return EMPTY_DOCUMENT

        cached = self._cached
        if self.cache_enabled and cached is not None and cached.signature == signature:
            return cached

        text = read_text_safe(self.path)
        document = LoadedDocument(
            text=text,
            sections=tuple(self.sectionizer.split(text)),
            version=compute_hash(text)[:16] if text else "empty",
            signature=signature,
        )
        logger.info(
            f"Loaded {self.path} (version={document.version}, "
            f"sections={len(document.sections)})"
        )

        if self.cache_enabled:
            with self._lock:
                self._cached = document
        return document

    def read(self) -> str:
        """Get the current document text ("" if unreadable)."""
        return self.load().text

    def sections(self) -> list[Section]:
        """Get the sections of the current document version."""
        return list(self.load().sections)

    @property
    def version(self) -> str:
        """Short content hash of the current document version."""
        return self.load().version

    def invalidate(self) -> None:
        """Drop the cached version; the next load reads the file again."""
        with self._lock:
            self._cached = None
