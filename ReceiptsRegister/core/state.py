"""
Local SQLite store of per-user sync state.

The sync engine never writes this store itself. Callers record the state only
after a successful sync, and clear it when the user signs out.
"""

import logging
import pathlib
import sqlite3
from typing import Optional, Union

from .records import SyncResult, SyncState
from ..status import status

TABLE: str = 'sync_state'

SCHEMA: str = f"""
CREATE TABLE IF NOT EXISTS {TABLE} (
    user_id TEXT PRIMARY KEY,
    spreadsheet_id TEXT,
    last_sync TEXT
)
"""


class SyncStateStore:
    """Persists :class:`SyncState` per user.

    Args:
        db_path: SQLite database file. Defaults to the configured state database.
    """

    def __init__(self, db_path: Optional[Union[str, pathlib.Path]] = None) -> None:
        if db_path is None:
            from ..settings import lib
            db_path = lib.settings.state_db_path
        self.db_path = pathlib.Path(db_path)
        self._initialize_schema()

    def connection(self) -> sqlite3.Connection:
        """Return a new connection to the state database."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(str(self.db_path), timeout=2.0)

    def _initialize_schema(self) -> None:
        conn: Optional[sqlite3.Connection] = None
        try:
            conn = self.connection()
            with conn:
                conn.execute(SCHEMA)
            logging.debug(f'Sync state table ready in {self.db_path}')
        finally:
            if conn:
                conn.close()

    def get(self, user_id: str) -> SyncState:
        """
        Return the stored state of a user, or an empty state.

        Raises:
            status.SyncStateInvalidException: If the stored row is unreadable.
        """
        conn: Optional[sqlite3.Connection] = None
        try:
            conn = self.connection()
            row = conn.execute(
                f'SELECT spreadsheet_id, last_sync FROM {TABLE} WHERE user_id=?', (user_id,)
            ).fetchone()
        except sqlite3.Error as ex:
            raise status.SyncStateInvalidException(f'Could not read sync state: {ex}') from ex
        finally:
            if conn:
                conn.close()

        if row is None:
            return SyncState()

        spreadsheet_id, last_sync = row
        for value in (spreadsheet_id, last_sync):
            if value is not None and not isinstance(value, str):
                raise status.SyncStateInvalidException(f'Unexpected value in sync state of "{user_id}": {value!r}')
        return SyncState(spreadsheet_id=spreadsheet_id, last_sync_timestamp=last_sync)

    def save(self, user_id: str, state: SyncState) -> None:
        """Insert or replace the state of a user."""
        conn: Optional[sqlite3.Connection] = None
        try:
            conn = self.connection()
            with conn:
                conn.execute(
                    f'INSERT OR REPLACE INTO {TABLE} (user_id, spreadsheet_id, last_sync) VALUES (?, ?, ?)',
                    (user_id, state.spreadsheet_id, state.last_sync_timestamp)
                )
        finally:
            if conn:
                conn.close()
        logging.debug(f'Saved sync state of "{user_id}": {state}')

    def record(self, user_id: str, result: SyncResult) -> SyncState:
        """Store the spreadsheet id and completion time of a successful sync."""
        state = SyncState(spreadsheet_id=result.spreadsheet_id, last_sync_timestamp=result.timestamp)
        self.save(user_id, state)
        return state

    def set_spreadsheet_id(self, user_id: str, spreadsheet_id: str) -> SyncState:
        """Store a spreadsheet id, keeping the last sync time."""
        state = self.get(user_id)
        state.spreadsheet_id = spreadsheet_id
        self.save(user_id, state)
        return state

    def clear(self, user_id: str) -> None:
        """Delete the state of a user."""
        conn: Optional[sqlite3.Connection] = None
        try:
            conn = self.connection()
            with conn:
                conn.execute(f'DELETE FROM {TABLE} WHERE user_id=?', (user_id,))
        finally:
            if conn:
                conn.close()
        logging.debug(f'Cleared sync state of "{user_id}"')
