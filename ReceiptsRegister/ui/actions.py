"""Application-wide Qt signals and utility slots for ReceiptsRegister.

This module provides:
    - open_spreadsheet slot: opens a synced spreadsheet URL in the browser.
    - Signals: custom Qt signals for configuration changes, the sync lifecycle,
      authentication prompts and errors.
"""
import logging

from PySide6 import QtCore, QtGui


@QtCore.Slot(str)
def open_spreadsheet(url: str) -> None:
    """
    Opens the spreadsheet in the default browser.

    Args:
        url (str): The spreadsheet URL, usually :attr:`SyncResult.url`.
    """
    if not url:
        logging.error('No spreadsheet url to open.')
        return
    logging.debug(f'Opening spreadsheet: {url}')
    QtGui.QDesktopServices.openUrl(QtCore.QUrl(url))


class Signals(QtCore.QObject):
    """Centralized Qt signals for config, sync and UI events."""
    authenticationRequested = QtCore.Signal()

    configSectionChanged = QtCore.Signal(str)

    syncStarted = QtCore.Signal()
    syncFinished = QtCore.Signal(object)  # SyncResult

    openSpreadsheet = QtCore.Signal(str)

    error = QtCore.Signal(str)

    def __init__(self):
        super().__init__()
        self._connect_signals()

    def _connect_signals(self):
        self.openSpreadsheet.connect(open_spreadsheet)


signals = Signals()
