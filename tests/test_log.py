# tests/test_log.py
"""
Tests for ReceiptsRegister.log.log
(covers the Qt bridge and the setup helpers).

Run:
    python -m unittest tests.test_log
"""
import logging

from PySide6.QtCore import QtMsgType

from ReceiptsRegister.log.log import (
    qt_message_handler,
    set_logging_level,
    setup_logging,
)
from tests.base import BaseTestCase


class LogModuleTests(BaseTestCase):
    """
    Each test starts with a fresh root logger configured by
    setup_logging(enable_stream_handler=False).
    """

    def setUp(self) -> None:
        super().setUp()

        # enable logging
        logging.disable(logging.NOTSET)

        setup_logging(enable_stream_handler=False,
                      enable_qt_handler=False,
                      log_level=logging.DEBUG)

        self.root_logger = logging.getLogger()

    def tearDown(self) -> None:
        setup_logging(enable_qt_handler=False)
        super().tearDown()

    def test_setup_logging_without_stream_handler(self):
        self.assertEqual(self.root_logger.handlers, [])
        self.assertEqual(self.root_logger.level, logging.DEBUG)

    def test_setup_logging_with_stream_handler(self):
        setup_logging(enable_stream_handler=True, enable_qt_handler=False)
        handlers = logging.getLogger().handlers
        self.assertEqual([type(h) for h in handlers], [logging.StreamHandler])
        self.assertEqual(handlers[0].level, logging.DEBUG)

    def test_setup_logging_replaces_handlers(self):
        setup_logging(enable_stream_handler=True, enable_qt_handler=False)
        setup_logging(enable_stream_handler=True, enable_qt_handler=False)
        self.assertEqual(len(logging.getLogger().handlers), 1)

    def test_set_logging_level_accepts_valid_levels(self):
        setup_logging(enable_stream_handler=True, enable_qt_handler=False)
        set_logging_level(logging.ERROR)
        self.assertEqual(self.root_logger.level, logging.ERROR)
        for h in self.root_logger.handlers:
            self.assertEqual(h.level, logging.ERROR)

    def test_set_logging_level_rejects_non_int(self):
        with self.assertRaises(ValueError):
            set_logging_level('INFO')  # type: ignore[arg-type]

    def test_set_logging_level_rejects_unknown(self):
        with self.assertRaises(ValueError):
            set_logging_level(1234)

    def test_qt_message_handler_maps_to_logging(self):
        with self.assertLogs('Qt', level=logging.DEBUG) as cm:
            qt_message_handler(QtMsgType.QtInfoMsg, None, 'Qt info')
            qt_message_handler(QtMsgType.QtWarningMsg, None, 'Qt warn ')
            qt_message_handler(QtMsgType.QtCriticalMsg, None, 'Qt critical')
        self.assertEqual(cm.output, [
            'INFO:Qt:Qt info',
            'WARNING:Qt:Qt warn',
            'ERROR:Qt:Qt critical',
        ])

    def test_qt_message_handler_fatal_exits(self):
        with self.assertRaises(SystemExit):
            qt_message_handler(QtMsgType.QtFatalMsg, None, 'fatal')

    def test_status_exceptions_are_logged(self):
        from ReceiptsRegister.status import status
        from tests.base import mute_ui_signals

        with self.assertLogs(level=logging.ERROR) as cm:
            with mute_ui_signals():
                status.AppendError('Quota exceeded')
        self.assertTrue(any('Quota exceeded' in m for m in cm.output))
