# backend/app/services/correlation/latest_view.py
import threading
from typing import Optional

from app.schemas.incidents import AggregatedView


class LatestViewStore:
    """
    Single-slot holder for the current AggregatedView.

    Views are frozen models; replace() swaps the whole reference under a
    lock, so readers see either the old view or the new one, never a mix.
    """

    def __init__(self, initial: Optional[AggregatedView] = None) -> None:
        self._lock = threading.Lock()
        self._view = initial or AggregatedView.placeholder()
        self._version = 0

    def get(self) -> AggregatedView:
        with self._lock:
            return self._view

    @property
    def version(self) -> int:
        """Number of replacements since startup (0 = still the placeholder)."""
        with self._lock:
            return self._version

    def replace(self, view: AggregatedView) -> AggregatedView:
        """Install `view` and return the one it replaced."""
        with self._lock:
            previous, self._view = self._view, view
            self._version += 1
            return previous
