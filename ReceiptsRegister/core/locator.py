"""Finds the user's receipts spreadsheet by title, creating it when missing."""

import logging
from typing import Any, Dict, List, Optional, Tuple

import httplib2
from googleapiclient.errors import HttpError

from .auth import TokenProvider
from .service import ServiceClient, SPREADSHEET_MIME_TYPE
from ..status import status


def escape_query_value(value: str) -> str:
    """Escape a string for use inside a quoted Drive query literal."""
    return value.replace('\\', '\\\\').replace("'", "\\'")


def build_query(title: str) -> str:
    return (
        f"name = '{escape_query_value(title)}' "
        f"and mimeType = '{SPREADSHEET_MIME_TYPE}' "
        f"and trashed = false"
    )


class SpreadsheetLocator:
    """Resolves a spreadsheet title to a spreadsheet id.

    Args:
        provider: Token provider executing the requests.
        client: Drive and Sheets resources.
    """

    def __init__(self, provider: TokenProvider, client: ServiceClient) -> None:
        self.provider = provider
        self.client = client

    def find(self, title: str) -> Optional[str]:
        """
        Search Drive for a non-trashed spreadsheet with the exact title.

        A failed search is logged and reported as not found.

        Returns:
            The id of the first match, or None.

        Raises:
            status.AuthenticationError: If the request could not be authorized.
        """
        query: str = build_query(title)
        logging.debug(f'Searching Drive: {query}')
        try:
            result: Dict[str, Any] = self.provider.authenticated_request(
                lambda: self.client.drive().files().list(q=query, fields='files(id,name)')
            )
        except (HttpError, httplib2.HttpLib2Error, OSError) as ex:
            logging.warning(f'Spreadsheet search failed, treating "{title}" as not found: {ex}')
            return None

        files: List[Dict[str, Any]] = (result or {}).get('files') or []
        if not files:
            logging.debug(f'No spreadsheet named "{title}" found.')
            return None

        spreadsheet_id: str = files[0].get('id')
        logging.debug(f'Found spreadsheet "{title}" ({spreadsheet_id}).')
        return spreadsheet_id

    def create(self, title: str) -> str:
        """
        Create a new spreadsheet.

        Raises:
            status.SpreadsheetCreateError: If the spreadsheet could not be created.
            status.AuthenticationError: If the request could not be authorized.
        """
        logging.debug(f'Creating spreadsheet "{title}"')
        try:
            result: Dict[str, Any] = self.provider.authenticated_request(
                lambda: self.client.sheets().spreadsheets().create(body={'properties': {'title': title}})
            )
        except HttpError as ex:
            raise status.SpreadsheetCreateError(ex.reason) from ex
        except (httplib2.HttpLib2Error, OSError) as ex:
            raise status.SpreadsheetCreateError(str(ex)) from ex

        spreadsheet_id = (result or {}).get('spreadsheetId')
        if not spreadsheet_id:
            raise status.SpreadsheetCreateError('The response did not contain a spreadsheet id.')

        logging.info(f'Created spreadsheet "{title}" ({spreadsheet_id}).')
        return spreadsheet_id

    def find_or_create(self, title: str) -> Tuple[str, bool]:
        """
        Return the id of the spreadsheet with the given title, creating it if needed.

        Returns:
            A tuple ``(spreadsheet_id, is_new)``.
        """
        spreadsheet_id = self.find(title)
        if spreadsheet_id:
            return spreadsheet_id, False
        return self.create(title), True
