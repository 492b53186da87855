"""Thread-safe holder for the single served document.

Writers swap an immutable bytes object under a lock; readers take the
reference under the same lock. A request therefore always sees one complete
version of the document.

Text that cannot be encoded (lone surrogates) is rejected with
ValidationError before anything is swapped.
"""
from __future__ import annotations

import threading

from .exceptions import ValidationError

ENCODING = "utf-8"


def encode_document(text: str) -> bytes:
    try:
        return text.encode(ENCODING)
    except UnicodeEncodeError as e:
        raise ValidationError(f"document is not encodable as {ENCODING}: {e.reason} at position {e.start}") from e


class DocumentStore:
    def __init__(self, text: str = "") -> None:
        self._lock = threading.Lock()
        self._text = text
        self._payload = encode_document(text)
        self._version = 0

    def set(self, text: str) -> int:
        """Replace the document; returns the new version number."""
        payload = encode_document(text)
        with self._lock:
            self._text = text
            self._payload = payload
            self._version += 1
            return self._version

    def text(self) -> str:
        with self._lock:
            return self._text

    def payload(self) -> bytes:
        with self._lock:
            return self._payload

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def __len__(self) -> int:
        with self._lock:
            return len(self._payload)


__all__ = ["DocumentStore", "ENCODING", "encode_document"]
