"""Filters out receipts that are already present in the spreadsheet.

The id column of the spreadsheet is the primary source of truth. When it
cannot be read, the last sync timestamp is used instead, and when there is no
usable timestamp every candidate is exported. A duplicate row is preferred to
a lost one.
"""

import datetime
import logging
from typing import Any, Dict, List, Optional, Sequence, Set

import httplib2
from dateutil import parser as date_parser
from googleapiclient.errors import HttpError

from .auth import TokenProvider
from .records import ReceiptRecord
from .service import ServiceClient, idx_to_col
from .writer import COLUMNS, Column, id_column_index


class DedupReadError(Exception):
    """The id column read returned a payload that could not be interpreted."""
    pass


def parse_timestamp(value: str) -> datetime.datetime:
    """Parse an ISO-8601 timestamp into an aware datetime, assuming UTC when no offset is given.

    Raises:
        ValueError: If the value cannot be parsed.
    """
    try:
        dt = date_parser.isoparse(value)
    except (ValueError, TypeError, OverflowError) as ex:
        raise ValueError(f'Invalid timestamp: {value!r}') from ex
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt


def _is_after(record: ReceiptRecord, cutoff: datetime.datetime) -> bool:
    if not record.created_at:
        logging.debug(f'Receipt {record.id} has no creation time, keeping it.')
        return True
    try:
        return parse_timestamp(record.created_at) > cutoff
    except ValueError as ex:
        logging.debug(f'Receipt {record.id}: {ex}, keeping it.')
        return True


class DeduplicationResolver:
    """Returns the subset of candidates not yet exported, preserving their order."""

    def __init__(self, provider: TokenProvider, client: ServiceClient,
                 columns: Sequence[Column] = COLUMNS) -> None:
        self.provider = provider
        self.client = client
        self.columns = columns

    @property
    def id_range(self) -> str:
        letter = idx_to_col(id_column_index(self.columns))
        return f'{letter}:{letter}'

    def read_existing_ids(self, spreadsheet_id: str) -> Set[str]:
        """
        Read every value of the id column.

        An empty or missing column is a successful read and returns an empty set.

        Raises:
            DedupReadError: If the payload is malformed.
            googleapiclient.errors.HttpError: If the read failed.
            status.AuthenticationError: If the request could not be authorized.
        """
        rng = self.id_range
        logging.debug(f'Reading existing ids from {spreadsheet_id}!{rng}')
        result: Dict[str, Any] = self.provider.authenticated_request(
            lambda: self.client.sheets().spreadsheets().values().get(
                spreadsheetId=spreadsheet_id,
                range=rng,
                majorDimension='COLUMNS',
            )
        )
        if result is None:
            return set()
        if not isinstance(result, dict):
            raise DedupReadError(f'Unexpected response type: {type(result)}')

        columns = result.get('values') or []
        if not isinstance(columns, list) or (columns and not isinstance(columns[0], list)):
            raise DedupReadError('Unexpected "values" layout in response.')
        if not columns:
            return set()
        return {str(v) for v in columns[0] if v not in (None, '')}

    def fetch_existing_ids(self, spreadsheet_id: str) -> Optional[Set[str]]:
        """
        Read the id column, degrading a failed read to None.

        Returns:
            The ids present in the spreadsheet, or None if they could not be read.

        Raises:
            status.AuthenticationError: If the request could not be authorized.
        """
        try:
            return self.read_existing_ids(spreadsheet_id)
        except (HttpError, httplib2.HttpLib2Error, OSError, DedupReadError) as ex:
            logging.warning(f'Could not read existing receipt ids, falling back to the last sync time: {ex}')
            return None

    def select(self, candidates: Sequence[ReceiptRecord], existing: Optional[Set[str]],
               last_sync_timestamp: Optional[str] = None, is_new: bool = False) -> List[ReceiptRecord]:
        """
        Filter the candidates against ids returned by :meth:`fetch_existing_ids`.

        When ``existing`` is None the last sync timestamp is used instead.
        """
        if existing is None:
            return self._resolve_by_timestamp(candidates, last_sync_timestamp, is_new)

        resolved = [r for r in candidates if r.id not in existing]
        logging.debug(f'{len(candidates) - len(resolved)} of {len(candidates)} receipts already exported.')
        return resolved

    def resolve(self, candidates: Sequence[ReceiptRecord], spreadsheet_id: str,
                last_sync_timestamp: Optional[str] = None, is_new: bool = False) -> List[ReceiptRecord]:
        """
        Return the candidates not yet present in the spreadsheet.

        Args:
            candidates: Records the caller wants exported.
            spreadsheet_id: Target spreadsheet.
            last_sync_timestamp: ISO-8601 time of the last successful sync, if any.
            is_new: True when the spreadsheet was just created.

        Returns:
            A list of records, in candidate order.
        """
        existing = self.fetch_existing_ids(spreadsheet_id)
        return self.select(candidates, existing, last_sync_timestamp, is_new)

    def _resolve_by_timestamp(self, candidates: Sequence[ReceiptRecord],
                              last_sync_timestamp: Optional[str], is_new: bool) -> List[ReceiptRecord]:
        if is_new or not last_sync_timestamp:
            logging.warning('No usable last sync time, exporting all receipts.')
            return list(candidates)

        try:
            cutoff = parse_timestamp(last_sync_timestamp)
        except ValueError as ex:
            logging.warning(f'{ex}, exporting all receipts.')
            return list(candidates)

        return [r for r in candidates if _is_after(r, cutoff)]
