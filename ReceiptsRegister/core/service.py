"""Google Drive and Sheets API resources.

The resources are built without credentials: every request they produce is
executed through :meth:`ReceiptsRegister.core.auth.TokenProvider.authenticated_request`,
which adds the bearer token.
"""

import logging
from typing import Any, Optional

import httplib2
from googleapiclient.discovery import build

TIMEOUT: int = 60

SPREADSHEET_MIME_TYPE: str = 'application/vnd.google-apps.spreadsheet'


def idx_to_col(idx: int) -> str:
    """Convert zero-based column index to spreadsheet letter(s).

    Args:
        idx: The zero-based column index.

    Returns:
        The spreadsheet column letter(s) (e.g., A, B, AA).
    """
    letters = ''
    while idx >= 0:
        letters = chr((idx % 26) + ord('A')) + letters
        idx = idx // 26 - 1
    return letters


class ServiceClient:
    """Lazily builds and caches the Drive v3 and Sheets v4 API resources.

    Args:
        http: Optional ``httplib2.Http`` compatible object used to execute
            requests. Defaults to a new ``httplib2.Http`` with a timeout.
    """

    def __init__(self, http: Optional[Any] = None) -> None:
        self._http = http
        self._drive: Any = None
        self._sheets: Any = None

    @property
    def http(self) -> Any:
        if self._http is None:
            self._http = httplib2.Http(timeout=TIMEOUT)
        return self._http

    def drive(self) -> Any:
        """Return the Drive v3 resource."""
        if self._drive is None:
            self._drive = build('drive', 'v3', http=self.http, cache_discovery=False)
            logging.debug('Google Drive service client created successfully.')
        return self._drive

    def sheets(self) -> Any:
        """Return the Sheets v4 resource."""
        if self._sheets is None:
            self._sheets = build('sheets', 'v4', http=self.http, cache_discovery=False)
            logging.debug('Google Sheets service client created successfully.')
        return self._sheets

    def close(self) -> None:
        """Close the cached resources."""
        for service in (self._drive, self._sheets):
            if service is None:
                continue
            try:
                service.close()
            except (AttributeError, OSError) as ex:
                logging.debug(f'Failed closing cached service client: {ex}')
        self._drive = None
        self._sheets = None
