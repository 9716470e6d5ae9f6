"""Tests for ReceiptsRegister.core.records and ReceiptsRegister.status.status."""
import datetime
from decimal import Decimal

from ReceiptsRegister.core.records import ReceiptRecord, SyncResult
from ReceiptsRegister.settings.locale import get_translator
from ReceiptsRegister.status import status
from ReceiptsRegister.ui.actions import signals
from tests.base import BaseTestCase


class ReceiptRecordTest(BaseTestCase):

    def test_from_dict(self):
        record = ReceiptRecord.from_dict({
            'id': 42,
            'transaction_date': '2025-01-15',
            'merchant_name': 'Store',
            'total_amount': Decimal('9.99'),
            'image_url': None,
            'created_at': '2025-01-15T10:00:00Z',
            'user_id': 'ignored',
        })
        self.assertEqual(record.id, '42')
        self.assertEqual(record.total_amount, Decimal('9.99'))
        self.assertIsNone(record.image_url)

    def test_from_dict_requires_id(self):
        with self.assertRaises(KeyError):
            ReceiptRecord.from_dict({'merchant_name': 'Store'})

    def test_records_are_read_only(self):
        record = ReceiptRecord('r1', '2025-01-15', 'Store', 1)
        with self.assertRaises(AttributeError):
            record.id = 'r2'


class SyncResultTest(BaseTestCase):

    def test_create(self):
        result = SyncResult.create('abc', 2)
        self.assertEqual(result.url, 'https://docs.google.com/spreadsheets/d/abc')
        self.assertFalse(result.up_to_date)
        stamp = datetime.datetime.fromisoformat(result.timestamp)
        self.assertEqual(stamp.utcoffset(), datetime.timedelta(0))

    def test_up_to_date_message(self):
        result = SyncResult.create('abc', 0)
        self.assertTrue(result.up_to_date)
        self.assertEqual(result.message(get_translator('en')), 'Already up to date')
        self.assertEqual(result.message(get_translator('es')), 'Ya está actualizado')

    def test_default_message_is_english(self):
        self.assertEqual(SyncResult.create('abc', 3).message(), 'Exported 3 receipt(s)')


class StatusExceptionTest(BaseTestCase):

    def test_status_exception_emits_error(self):
        received = []

        def _slot(msg: str) -> None:
            received.append(msg)

        signals.error.connect(_slot)
        try:
            ex = status.AuthenticationError()
        finally:
            signals.error.disconnect(_slot)

        self.assertEqual(ex.status, status.Status.NotAuthenticated)
        self.assertEqual(received, [status.get_message(status.Status.NotAuthenticated)])

    def test_append_error_message_is_verbatim(self):
        received = []

        def _slot(msg: str) -> None:
            received.append(msg)

        signals.error.connect(_slot)
        try:
            ex = status.AppendError('Quota exceeded for quota metric')
        finally:
            signals.error.disconnect(_slot)

        self.assertEqual(str(ex), 'Quota exceeded for quota metric')
        self.assertEqual(received, ['Quota exceeded for quota metric'])

    def test_every_status_has_a_message(self):
        for s in status.Status:
            self.assertIn(s, status.STATUS_MESSAGE)

    def test_every_status_has_an_exception(self):
        def subclasses(cls):
            for sub in cls.__subclasses__():
                yield sub
                yield from subclasses(sub)

        raised = {cls.status for cls in subclasses(status.BaseStatusException)}
        self.assertEqual(raised, set(status.Status))
