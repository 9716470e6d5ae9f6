"""Per-user sync sessions.

:class:`SyncSession` allows at most one sync or connect per user at a time,
feeds the stored state into the orchestrator and records the new state once a sync has
succeeded.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional, Sequence

from . import auth
from .records import ReceiptRecord, SyncResult
from .state import SyncStateStore
from .sync import SyncOrchestrator
from ..status import status


class SyncSession:
    """Caller-side wrapper around :class:`SyncOrchestrator`.

    Args:
        orchestrator: The orchestrator to run.
        store: Persisted per-user state.
    """

    def __init__(self, orchestrator: SyncOrchestrator, store: SyncStateStore) -> None:
        self.orchestrator = orchestrator
        self.store = store
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(user_id, threading.Lock())

    def is_syncing(self, user_id: str) -> bool:
        return self._lock_for(user_id).locked()

    @contextmanager
    def _exclusive(self, user_id: str) -> Iterator[None]:
        """Hold the user's lock for the duration of the block.

        Raises:
            status.SyncInProgressError: If the lock is already held.
        """
        lock = self._lock_for(user_id)
        if not lock.acquire(blocking=False):
            raise status.SyncInProgressError(f'User "{user_id}" is already syncing.')
        try:
            yield
        finally:
            lock.release()

    def sync(self, user_id: str, candidates: Sequence[ReceiptRecord],
             translate: Optional[Callable[[str], str]] = None) -> SyncResult:
        """
        Run one sync for a user and store the resulting state.

        Raises:
            status.SyncInProgressError: If a sync or connect for this user is already running.
        """
        with self._exclusive(user_id):
            state = self.store.get(user_id)
            result = self.orchestrator.sync(
                candidates,
                last_sync_timestamp=state.last_sync_timestamp,
                translate=translate,
            )
            self.store.record(user_id, result)
            logging.info(f'Sync of "{user_id}" finished: {result.synced_count} rows exported.')
            return result

    def connect(self, user_id: str, translate: Optional[Callable[[str], str]] = None) -> str:
        """
        Sign in, make sure the spreadsheet exists and store its id.

        Raises:
            status.SyncInProgressError: If a sync or connect for this user is already running.
        """
        with self._exclusive(user_id):
            spreadsheet_id = self.orchestrator.connect(translate)
            self.store.set_spreadsheet_id(user_id, spreadsheet_id)
            return spreadsheet_id

    def sign_out(self, user_id: str) -> None:
        """Forget the stored grant, the cached token and the user's sync state."""
        auth.sign_out()
        self.orchestrator.provider.invalidate()
        self.store.clear(user_id)
