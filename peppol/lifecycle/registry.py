"""Synchronisierte In-Memory-Registry mit einem Lock pro Dokument-ID."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from .status import PeppolDocument


class DocumentRegistry:
    """Keyed Store: ``_guard`` schützt die Maps, Key-Locks serialisieren je Dokument.

    Read-check-write-Sequenzen auf einem Eintrag laufen in ``locked(id)``.
    Operationen auf verschiedenen IDs blockieren sich nicht gegenseitig.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[str, PeppolDocument] = {}
        self._locks: Dict[str, threading.Lock] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def __contains__(self, document_id: object) -> bool:
        with self._guard:
            return document_id in self._entries

    def _key_lock(self, document_id: str) -> Optional[threading.Lock]:
        with self._guard:
            return self._locks.get(document_id)

    def add(self, entry: PeppolDocument) -> None:
        with self._guard:
            if entry.document_id in self._entries:
                raise KeyError(f"document {entry.document_id} already registered")
            self._entries[entry.document_id] = entry
            self._locks[entry.document_id] = threading.Lock()

    def get(self, document_id: str) -> Optional[PeppolDocument]:
        with self._guard:
            return self._entries.get(document_id)

    def values(self) -> List[PeppolDocument]:
        with self._guard:
            return list(self._entries.values())

    def lock_count(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def locked(self, document_id: str) -> Iterator[Optional[PeppolDocument]]:
        """Hält den Key-Lock und liefert den Eintrag (``None`` bei unbekannter ID).

        Für unbekannte IDs wird kein Lock angelegt.
        """

        lock = self._key_lock(document_id)
        if lock is None:
            yield None
            return
        with lock:
            yield self.get(document_id)

    def remove(self, document_id: str) -> bool:
        with self.locked(document_id) as entry:
            if entry is None:
                return False
            with self._guard:
                del self._entries[document_id]
                self._locks.pop(document_id, None)
                return True
