"""Wiring tests for ReceiptsRegister.core.service.

Real Drive and Sheets resources are built from the discovery documents bundled
with google-api-python-client and answered by ``HttpMockSequence``, so the
exact URIs, headers and bodies sent by the sync engine can be checked.
"""
import json
from urllib.parse import parse_qs, unquote, urlparse

from googleapiclient.http import HttpMockSequence

from ReceiptsRegister.core.dedup import DeduplicationResolver
from ReceiptsRegister.core.locator import SpreadsheetLocator, build_query
from ReceiptsRegister.core.service import ServiceClient, idx_to_col
from ReceiptsRegister.core.sync import SyncOrchestrator
from ReceiptsRegister.core.auth import TokenProvider
from ReceiptsRegister.core.writer import RowAppender
from ReceiptsRegister.settings.locale import get_translator
from ReceiptsRegister.status import status
from tests.base import BaseTestCase, CountingAuthorizer, make_record, mute_ui_signals

TITLE = 'Receipts Register - Receipts'

OK = {'status': '200'}
UNAUTHORIZED = {'status': '401'}


def _json(data) -> str:
    return json.dumps(data)


class RecordingHttp(HttpMockSequence):
    """HttpMockSequence that keeps every request it answered."""

    def __init__(self, iterable):
        super().__init__(iterable)
        self.requests = []

    def request(self, uri, method='GET', body=None, headers=None, **kwargs):
        self.requests.append({
            'uri': uri,
            'method': method,
            'body': body,
            'headers': dict(headers or {}),
        })
        return super().request(uri, method=method, body=body, headers=headers, **kwargs)


class IdxToColTest(BaseTestCase):

    def test_letters(self):
        self.assertEqual(idx_to_col(0), 'A')
        self.assertEqual(idx_to_col(4), 'E')
        self.assertEqual(idx_to_col(25), 'Z')
        self.assertEqual(idx_to_col(26), 'AA')
        self.assertEqual(idx_to_col(701), 'ZZ')


class ServiceWiringTest(BaseTestCase):

    def _setup(self, responses):
        self.http = RecordingHttp(responses)
        self.client = ServiceClient(http=self.http)
        self.authorizer = CountingAuthorizer()
        self.provider = TokenProvider(self.authorizer)

    def test_resources_are_cached(self):
        self._setup([])
        self.assertIs(self.client.drive(), self.client.drive())
        self.assertIs(self.client.sheets(), self.client.sheets())
        self.assertEqual(self.http.requests, [])

    def test_drive_search_request(self):
        self._setup([(OK, _json({'files': [{'id': 'abc', 'name': TITLE}]}))])

        spreadsheet_id = SpreadsheetLocator(self.provider, self.client).find(TITLE)

        self.assertEqual(spreadsheet_id, 'abc')
        request = self.http.requests[0]
        url = urlparse(request['uri'])
        self.assertEqual(request['method'], 'GET')
        self.assertTrue(url.path.endswith('/drive/v3/files'))
        query = parse_qs(url.query)
        self.assertEqual(query['q'], [build_query(TITLE)])
        self.assertEqual(query['fields'], ['files(id,name)'])
        self.assertEqual(request['headers']['authorization'], 'Bearer token-1')

    def test_401_rebuilds_request_with_new_token(self):
        self._setup([
            (UNAUTHORIZED, _json({'error': {'code': 401, 'message': 'Invalid Credentials'}})),
            (OK, _json({'files': []})),
        ])

        self.assertIsNone(SpreadsheetLocator(self.provider, self.client).find(TITLE))

        self.assertEqual(len(self.http.requests), 2)
        self.assertEqual(self.http.requests[0]['headers']['authorization'], 'Bearer token-1')
        self.assertEqual(self.http.requests[1]['headers']['authorization'], 'Bearer token-2')
        self.assertEqual(self.http.requests[0]['uri'], self.http.requests[1]['uri'])

    def test_second_401_is_not_retried(self):
        self._setup([
            (UNAUTHORIZED, _json({'error': {'code': 401, 'message': 'Invalid Credentials'}})),
            (UNAUTHORIZED, _json({'error': {'code': 401, 'message': 'Invalid Credentials'}})),
        ])

        with mute_ui_signals():
            with self.assertRaises(status.AuthenticationError):
                SpreadsheetLocator(self.provider, self.client).find(TITLE)
        self.assertEqual(len(self.http.requests), 2)

    def test_create_request(self):
        self._setup([(OK, _json({'spreadsheetId': 'new-id'}))])

        spreadsheet_id = SpreadsheetLocator(self.provider, self.client).create(TITLE)

        self.assertEqual(spreadsheet_id, 'new-id')
        request = self.http.requests[0]
        self.assertEqual(request['method'], 'POST')
        self.assertTrue(urlparse(request['uri']).path.endswith('/v4/spreadsheets'))
        self.assertEqual(json.loads(request['body']), {'properties': {'title': TITLE}})

    def test_id_column_request(self):
        self._setup([(OK, _json({'range': 'Sheet1!E1:E3', 'majorDimension': 'COLUMNS',
                                 'values': [['ID', 'r1', 'r2']]}))])

        resolver = DeduplicationResolver(self.provider, self.client)
        resolved = resolver.resolve([make_record('r1'), make_record('r3')], 'sheet-id')

        self.assertEqual([r.id for r in resolved], ['r3'])
        url = urlparse(self.http.requests[0]['uri'])
        self.assertTrue(unquote(url.path).endswith('/v4/spreadsheets/sheet-id/values/E:E'))
        self.assertEqual(parse_qs(url.query)['majorDimension'], ['COLUMNS'])

    def test_append_request(self):
        self._setup([(OK, _json({'updates': {'updatedRows': 1}}))])

        RowAppender(self.provider, self.client).append('sheet-id', [make_record('r1', image_url=None)])

        request = self.http.requests[0]
        url = urlparse(request['uri'])
        self.assertEqual(request['method'], 'POST')
        self.assertTrue(unquote(url.path).endswith('/v4/spreadsheets/sheet-id/values/A1:append'))
        self.assertEqual(parse_qs(url.query)['valueInputOption'], ['USER_ENTERED'])
        self.assertEqual(
            json.loads(request['body']),
            {'values': [['2025-01-15', 'Store', 100, '', 'r1']]}
        )

    def test_append_error_keeps_remote_message(self):
        message = 'Unable to parse range: A1'
        self._setup([({'status': '400'}, _json({'error': {'code': 400, 'message': message}}))])

        with mute_ui_signals():
            with self.assertRaises(status.AppendError) as ctx:
                RowAppender(self.provider, self.client).append('sheet-id', [make_record('r1')])
        self.assertEqual(str(ctx.exception), message)

    def test_full_first_sync(self):
        self._setup([
            (OK, _json({'files': []})),
            (OK, _json({'spreadsheetId': 'new-id'})),
            (OK, _json({'updates': {'updatedRows': 1}})),
            ({'status': '404'}, _json({'error': {'code': 404, 'message': 'Requested entity was not found.'}})),
            (OK, _json({'updates': {'updatedRows': 2}})),
        ])
        orchestrator = SyncOrchestrator(self.provider, self.client)

        with mute_ui_signals():
            result = orchestrator.sync([make_record('r1'), make_record('r2')], None, get_translator('en'))

        self.assertEqual(result.synced_count, 2)
        self.assertEqual(result.url, 'https://docs.google.com/spreadsheets/d/new-id')
        header_body = json.loads(self.http.requests[2]['body'])
        self.assertEqual(header_body, {'values': [['Date', 'Merchant', 'Total', 'Link', 'ID']]})
        self.assertEqual(self.authorizer.calls, 1)
