"""Unittest base class and in-memory Google service stubs."""
import json
import logging
import shutil
import tempfile
import unittest
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from PySide6 import QtCore, QtWidgets
from googleapiclient.errors import HttpError
from httplib2 import Response

from ReceiptsRegister.core.auth import AccessToken, TokenProvider
from ReceiptsRegister.core.locator import build_query
from ReceiptsRegister.core.records import ReceiptRecord
from ReceiptsRegister.core.service import ServiceClient
from ReceiptsRegister.settings import lib


@contextmanager
def mute_ui_signals():
    from ReceiptsRegister.ui.actions import signals
    blocker = QtCore.QSignalBlocker(signals)  # blocks every signal in `signals`
    try:
        yield
    finally:
        del blocker


def http_error(code: int, message: str = '') -> HttpError:
    """Return an HttpError carrying a Google style JSON error body."""
    content = json.dumps({'error': {'code': code, 'message': message}}).encode('utf-8')
    return HttpError(Response({'status': code}), content)


def make_record(rid: str, created_at: Optional[str] = None, **kwargs: Any) -> ReceiptRecord:
    data: Dict[str, Any] = {
        'id': rid,
        'transaction_date': '2025-01-15',
        'merchant_name': 'Store',
        'total_amount': 100,
        'image_url': f'https://example.com/{rid}.jpg',
        'created_at': created_at,
    }
    data.update(kwargs)
    return ReceiptRecord(**data)


class CountingAuthorizer:
    """Hands out token-1, token-2, ... and counts the calls."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> AccessToken:
        self.calls += 1
        return AccessToken(f'token-{self.calls}')


class FakeGoogle:
    """
    In-memory Drive and Sheets backend.

    Stub resources mimic the chained
        service.files().list(...).execute()
        service.spreadsheets().values().append(...).execute()
    pattern. Every terminal call returns a request object exposing ``headers``
    and ``execute()`` so the production code works unchanged.

    Queue failures per operation with :meth:`fail`. Operation names are
    ``files.list``, ``spreadsheets.create``, ``values.append`` and ``values.get``.
    """

    def __init__(self) -> None:
        self.files: Dict[str, str] = {}
        self.rows: Dict[str, List[List[Any]]] = {}
        self.calls: List[Dict[str, Any]] = []
        self.errors: Dict[str, List[Exception]] = {}
        self._next_id = 0

    def fail(self, op: str, *errors: Exception) -> None:
        self.errors.setdefault(op, []).extend(errors)

    def add_spreadsheet(self, title: str, rows: Optional[List[List[Any]]] = None) -> str:
        self._next_id += 1
        spreadsheet_id = f'sheet-{self._next_id}'
        self.files[spreadsheet_id] = title
        self.rows[spreadsheet_id] = [list(r) for r in rows or []]
        return spreadsheet_id

    def ops(self, op: Optional[str] = None) -> List[Dict[str, Any]]:
        return [c for c in self.calls if op is None or c['op'] == op]

    def _request(self, op: str, func: Callable[[], Any], **kwargs: Any) -> '_Request':
        return _Request(self, op, func, kwargs)

    # Drive
    def _files_list(self, q: str, fields: str) -> Dict[str, Any]:
        matches = [
            {'id': fid, 'name': title} for fid, title in self.files.items()
            if build_query(title) == q
        ]
        return {'files': matches}

    # Sheets
    def _create(self, body: Dict[str, Any]) -> Dict[str, Any]:
        spreadsheet_id = self.add_spreadsheet(body['properties']['title'])
        return {'spreadsheetId': spreadsheet_id, 'properties': body['properties']}

    def _append(self, spreadsheetId: str, range: str, valueInputOption: str, body: Dict[str, Any]) -> Dict[str, Any]:
        if spreadsheetId not in self.rows:
            raise http_error(404, f'Requested entity was not found: {spreadsheetId}')
        self.rows[spreadsheetId].extend(list(r) for r in body['values'])
        return {'spreadsheetId': spreadsheetId, 'updates': {'updatedRows': len(body['values'])}}

    def _get(self, spreadsheetId: str, range: str, majorDimension: str) -> Dict[str, Any]:
        if spreadsheetId not in self.rows:
            raise http_error(404, f'Requested entity was not found: {spreadsheetId}')
        col = ord(range.split(':')[0]) - ord('A')
        values = [r[col] if len(r) > col else '' for r in self.rows[spreadsheetId]]
        result: Dict[str, Any] = {'range': f'Sheet1!{range}', 'majorDimension': majorDimension}
        if any(v != '' for v in values):
            result['values'] = [values]
        return result


class _Request:

    def __init__(self, backend: FakeGoogle, op: str, func: Callable[..., Any], kwargs: Dict[str, Any]) -> None:
        self.backend = backend
        self.op = op
        self.func = func
        self.kwargs = kwargs
        self.headers: Dict[str, str] = {}

    def execute(self) -> Any:
        self.backend.calls.append({
            'op': self.op,
            'authorization': self.headers.get('authorization'),
            'kwargs': self.kwargs,
        })
        queued = self.backend.errors.get(self.op)
        if queued:
            raise queued.pop(0)
        return self.func(**self.kwargs)


class _Files:
    def __init__(self, backend: FakeGoogle) -> None:
        self._backend = backend

    def list(self, **kw):
        return self._backend._request('files.list', self._backend._files_list, **kw)


class _Drive:
    def __init__(self, backend: FakeGoogle) -> None:
        self._backend = backend

    def files(self):
        return _Files(self._backend)


class _Values:
    def __init__(self, backend: FakeGoogle) -> None:
        self._backend = backend

    def append(self, **kw):
        return self._backend._request('values.append', self._backend._append, **kw)

    def get(self, **kw):
        return self._backend._request('values.get', self._backend._get, **kw)


class _Spreadsheets:
    def __init__(self, backend: FakeGoogle) -> None:
        self._backend = backend

    def create(self, **kw):
        return self._backend._request('spreadsheets.create', self._backend._create, **kw)

    def values(self):
        return _Values(self._backend)


class _Sheets:
    def __init__(self, backend: FakeGoogle) -> None:
        self._backend = backend

    def spreadsheets(self):
        return _Spreadsheets(self._backend)


class FakeServiceClient(ServiceClient):
    """ServiceClient serving the stub resources of a :class:`FakeGoogle`."""

    def __init__(self, backend: FakeGoogle) -> None:
        super().__init__()
        self.backend = backend

    def drive(self):
        return _Drive(self.backend)

    def sheets(self):
        return _Sheets(self.backend)


class BaseTestCase(unittest.TestCase):
    """Base test case that points the settings at a temporary config directory."""

    tmp_dir: str
    config_dir: Path

    def setUp(self) -> None:
        """Set up a clean config directory and reinitialize the settings API."""
        # Ensure a QApplication is available
        if not QtWidgets.QApplication.instance():
            QtWidgets.QApplication([])  # type: ignore
            logging.debug('QtWidgets.QApplication initialized for tests.')

        self.tmp_dir = tempfile.mkdtemp(prefix='receiptsregister_test_')
        self.config_dir = Path(self.tmp_dir) / 'config'

        with mute_ui_signals():
            lib.settings = lib.SettingsAPI(config_dir=self.config_dir)
        logging.debug(f'SettingsAPI reinitialized in {self.config_dir}.')

    def tearDown(self) -> None:
        """Remove the temporary config directory."""
        shutil.rmtree(self.tmp_dir, ignore_errors=True)
        logging.debug(f'Removed test config directory {self.tmp_dir}')


class BaseSyncTestCase(BaseTestCase):
    """Base test case wiring a token provider to an in-memory Google backend."""

    def setUp(self) -> None:
        super().setUp()
        self.backend = FakeGoogle()
        self.client = FakeServiceClient(self.backend)
        self.authorizer = CountingAuthorizer()
        self.provider = TokenProvider(self.authorizer)
