"""Header and receipt row writers.

The column layout of the receipts spreadsheet is fixed by :data:`COLUMNS`.
Both writers append with ``valueInputOption=USER_ENTERED`` starting at ``A1``,
so the Sheets API places the rows after the last row with data.
"""

import logging
from decimal import Decimal
from typing import Any, Callable, Dict, List, NamedTuple, Sequence, Tuple

import httplib2
from googleapiclient.errors import HttpError

from .auth import TokenProvider
from .records import ReceiptRecord
from .service import ServiceClient
from ..status import status

APPEND_RANGE: str = 'A1'
VALUE_INPUT_OPTION: str = 'USER_ENTERED'


class Column(NamedTuple):
    header_key: str
    field: str


COLUMNS: Tuple[Column, ...] = (
    Column('receipts.receiptDate', 'transaction_date'),
    Column('receipts.merchant', 'merchant_name'),
    Column('receipts.total', 'total_amount'),
    Column('receipts.link', 'image_url'),
    Column('receipts.id', 'id'),
)


def id_column_index(columns: Sequence[Column] = COLUMNS) -> int:
    """Return the zero-based index of the record id column."""
    return next(i for i, c in enumerate(columns) if c.field == 'id')


def _to_cell(value: Any) -> Any:
    if value is None:
        return ''
    if isinstance(value, Decimal):
        return str(value)
    return value


def to_row(record: ReceiptRecord, columns: Sequence[Column] = COLUMNS) -> List[Any]:
    """Map a record to a row of cell values in column order."""
    return [_to_cell(getattr(record, c.field)) for c in columns]


def _append(provider: TokenProvider, client: ServiceClient, spreadsheet_id: str,
            values: List[List[Any]]) -> Dict[str, Any]:
    body: Dict[str, Any] = {'values': values}
    try:
        return provider.authenticated_request(
            lambda: client.sheets().spreadsheets().values().append(
                spreadsheetId=spreadsheet_id,
                range=APPEND_RANGE,
                valueInputOption=VALUE_INPUT_OPTION,
                body=body,
            )
        )
    except HttpError as ex:
        raise status.AppendError(ex.reason) from ex
    except (httplib2.HttpLib2Error, OSError) as ex:
        raise status.AppendError(str(ex)) from ex


class SchemaWriter:
    """Writes the translated header row of a spreadsheet."""

    def __init__(self, provider: TokenProvider, client: ServiceClient) -> None:
        self.provider = provider
        self.client = client

    def write_headers(self, spreadsheet_id: str, columns: Sequence[Column] = COLUMNS,
                      translate: Callable[[str], str] = str) -> None:
        """
        Append one row of header labels. Only call this for a spreadsheet without
        a header row: a newly created one, or one whose id column is empty.

        Raises:
            status.AppendError: If the header row could not be written.
            status.AuthenticationError: If the request could not be authorized.
        """
        headers: List[str] = [translate(c.header_key) for c in columns]
        logging.debug(f'Writing headers to {spreadsheet_id}: {headers}')
        _append(self.provider, self.client, spreadsheet_id, [headers])


class RowAppender:
    """Appends receipt rows in a single batch."""

    def __init__(self, provider: TokenProvider, client: ServiceClient) -> None:
        self.provider = provider
        self.client = client

    def append(self, spreadsheet_id: str, records: Sequence[ReceiptRecord],
               columns: Sequence[Column] = COLUMNS) -> int:
        """
        Append one row per record.

        Args:
            spreadsheet_id: Target spreadsheet.
            records: Records to write, in order.
            columns: Column layout.

        Returns:
            The number of rows sent.

        Raises:
            status.AppendError: With the remote error text, if the write failed.
            status.AuthenticationError: If the request could not be authorized.
        """
        if not records:
            logging.debug('Nothing to append.')
            return 0

        rows = [to_row(r, columns) for r in records]
        logging.debug(f'Appending {len(rows)} rows to {spreadsheet_id}')
        _append(self.provider, self.client, spreadsheet_id, rows)
        logging.info(f'Appended {len(rows)} rows to {spreadsheet_id}.')
        return len(rows)
