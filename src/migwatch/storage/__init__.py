"""Persisted dedup state: processed-signature history and pagination cursor."""

from migwatch.storage.cursor import CursorStore
from migwatch.storage.history import SignatureHistory

__all__ = ["CursorStore", "SignatureHistory"]
