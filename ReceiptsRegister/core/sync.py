"""Export receipts to the user's spreadsheet.

:class:`SyncOrchestrator` runs the stages of one sync in order:

1. find or create the spreadsheet by its title,
2. write the header row when the spreadsheet is new, or when an existing
   spreadsheet has an empty id column because an earlier header write failed,
3. drop the receipts already present,
4. append the rest in one batch.

Every stage runs sequentially on the calling thread. The orchestrator keeps no
state between syncs apart from the cached access token, and it never writes
the caller's :class:`~ReceiptsRegister.core.records.SyncState`.
"""

import logging
from typing import Callable, Optional, Sequence, Tuple

from .auth import TokenProvider
from .dedup import DeduplicationResolver
from .locator import SpreadsheetLocator
from .records import ReceiptRecord, SyncResult
from .service import ServiceClient
from .writer import COLUMNS, Column, RowAppender, SchemaWriter

DEFAULT_APP_NAME: str = 'Receipts Register'
DEFAULT_TITLE_KEY: str = 'receipts.title'


class SyncOrchestrator:
    """Composes the locator, writers and resolver into one sync.

    Args:
        provider: Token provider shared by every request of this orchestrator.
        client: Drive and Sheets resources. A default client is created when omitted.
        app_name: Prefix of the spreadsheet title.
        title_key: Translation key of the spreadsheet title suffix.
        columns: Column layout of the spreadsheet.
    """

    def __init__(self, provider: TokenProvider, client: Optional[ServiceClient] = None,
                 app_name: str = DEFAULT_APP_NAME, title_key: str = DEFAULT_TITLE_KEY,
                 columns: Sequence[Column] = COLUMNS) -> None:
        self.provider = provider
        self.client = client or ServiceClient()
        self.app_name = app_name
        self.title_key = title_key
        self.columns = columns

        self.locator = SpreadsheetLocator(provider, self.client)
        self.schema_writer = SchemaWriter(provider, self.client)
        self.resolver = DeduplicationResolver(provider, self.client, columns=columns)
        self.appender = RowAppender(provider, self.client)

    @classmethod
    def from_settings(cls, provider: Optional[TokenProvider] = None,
                      client: Optional[ServiceClient] = None) -> 'SyncOrchestrator':
        """Create an orchestrator using the spreadsheet section of the sync config."""
        from ..settings import lib
        config = lib.settings.get_section('spreadsheet')
        return cls(
            provider or TokenProvider(),
            client=client,
            app_name=config.get('app_name', DEFAULT_APP_NAME),
            title_key=config.get('title_key', DEFAULT_TITLE_KEY),
        )

    def title(self, translate: Callable[[str], str]) -> str:
        return f'{self.app_name} - {translate(self.title_key)}'

    def _open(self, translate: Callable[[str], str]) -> Tuple[str, bool]:
        title = self.title(translate)
        spreadsheet_id, is_new = self.locator.find_or_create(title)
        if is_new:
            self.schema_writer.write_headers(spreadsheet_id, self.columns, translate)
        return spreadsheet_id, is_new

    def connect(self, translate: Optional[Callable[[str], str]] = None) -> str:
        """
        Sign in if needed and make sure the spreadsheet exists.

        Returns:
            The spreadsheet id.

        Raises:
            status.AuthenticationError: If sign-in failed.
            status.SpreadsheetCreateError: If the spreadsheet could not be created.
            status.AppendError: If the header row of a new spreadsheet could not be written.
        """
        translate = translate or _default_translator()
        self.provider.get_token()
        spreadsheet_id, _ = self._open(translate)
        logging.info(f'Connected to spreadsheet {spreadsheet_id}.')
        return spreadsheet_id

    def sync(self, candidates: Sequence[ReceiptRecord], last_sync_timestamp: Optional[str] = None,
             translate: Optional[Callable[[str], str]] = None) -> SyncResult:
        """
        Export the candidates not yet present in the spreadsheet.

        Args:
            candidates: Receipts to export.
            last_sync_timestamp: ISO-8601 time of the last successful sync, used
                only when the existing ids cannot be read.
            translate: ``translate(key)`` callable for the title and headers.

        Returns:
            SyncResult: The spreadsheet and the number of rows appended.

        Raises:
            status.AuthenticationError: If no valid token could be obtained.
            status.SpreadsheetCreateError: If the spreadsheet could not be created.
            status.AppendError: If a write failed.
        """
        from ..ui.actions import signals

        translate = translate or _default_translator()
        logging.debug(f'Starting sync of {len(candidates)} candidate receipts.')
        signals.syncStarted.emit()

        spreadsheet_id, is_new = self._open(translate)
        existing = self.resolver.fetch_existing_ids(spreadsheet_id)
        if existing is not None and not existing and not is_new:
            # The id column holds no header label either
            logging.warning(f'Spreadsheet {spreadsheet_id} has no header row, writing it.')
            self.schema_writer.write_headers(spreadsheet_id, self.columns, translate)
        resolved = self.resolver.select(candidates, existing, last_sync_timestamp, is_new=is_new)

        if not resolved:
            logging.info('Spreadsheet is already up to date.')
            result = SyncResult.create(spreadsheet_id, 0)
        else:
            count = self.appender.append(spreadsheet_id, resolved, self.columns)
            result = SyncResult.create(spreadsheet_id, count)

        signals.syncFinished.emit(result)
        return result


def _default_translator() -> Callable[[str], str]:
    from ..settings.locale import get_default_translator
    return get_default_translator()
