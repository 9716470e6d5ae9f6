"""Plain data types shared by the sync engine.

This module provides:
    - ReceiptRecord: one receipt as handed over by the caller.
    - SyncState: the caller-owned spreadsheet id and last sync timestamp.
    - SyncResult: the outcome of a sync, with the result contract used by callers.
"""
import dataclasses
import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping, Optional, Union

SPREADSHEET_URL: str = 'https://docs.google.com/spreadsheets/d/{spreadsheet_id}'

Amount = Union[int, float, Decimal]


@dataclasses.dataclass(frozen=True)
class ReceiptRecord:
    """A receipt to export. Read-only from the sync engine's point of view."""
    id: str
    transaction_date: str
    merchant_name: str
    total_amount: Amount
    image_url: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ReceiptRecord':
        """Build a record from a backend row mapping.

        Args:
            data: Mapping with the snake_case receipt columns. ``id`` is required.

        Raises:
            KeyError: If ``id`` is missing.
        """
        if data.get('id') in (None, ''):
            raise KeyError('Receipt row is missing an "id".')
        return cls(
            id=str(data['id']),
            transaction_date=data.get('transaction_date') or '',
            merchant_name=data.get('merchant_name') or '',
            total_amount=data.get('total_amount', 0),
            image_url=data.get('image_url'),
            created_at=data.get('created_at'),
        )


@dataclasses.dataclass
class SyncState:
    """Per-user state persisted by the caller after a successful sync."""
    spreadsheet_id: Optional[str] = None
    last_sync_timestamp: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            'spreadsheetId': self.spreadsheet_id,
            'lastSyncTimestamp': self.last_sync_timestamp,
        }


@dataclasses.dataclass(frozen=True)
class SyncResult:
    """Outcome of one sync.

    Attributes:
        url (str): Browser URL of the spreadsheet.
        spreadsheet_id (str): Remote spreadsheet id.
        timestamp (str): ISO-8601 UTC time the sync completed.
        synced_count (int): Number of rows appended by this sync.
    """
    url: str
    spreadsheet_id: str
    timestamp: str
    synced_count: int

    @classmethod
    def create(cls, spreadsheet_id: str, synced_count: int) -> 'SyncResult':
        return cls(
            url=spreadsheet_url(spreadsheet_id),
            spreadsheet_id=spreadsheet_id,
            timestamp=utc_now(),
            synced_count=synced_count,
        )

    @property
    def up_to_date(self) -> bool:
        return self.synced_count == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'spreadsheetId': self.spreadsheet_id,
            'timestamp': self.timestamp,
            'syncedCount': self.synced_count,
        }

    def message(self, translate: Optional[Callable[[str], str]] = None) -> str:
        """Return the user-facing summary of this result.

        Args:
            translate: Optional ``translate(key)`` callable. Defaults to English.
        """
        if translate is None:
            from ..settings.locale import get_translator
            translate = get_translator()
        if self.up_to_date:
            return translate('sync.upToDate')
        return translate('sync.exported').format(count=self.synced_count)


def spreadsheet_url(spreadsheet_id: str) -> str:
    return SPREADSHEET_URL.format(spreadsheet_id=spreadsheet_id)


def utc_now() -> str:
    """Current time as an ISO-8601 string in UTC."""
    return datetime.datetime.now(datetime.timezone.utc).isoformat()
