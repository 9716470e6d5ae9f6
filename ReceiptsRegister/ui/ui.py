"""Dialog utilities for ReceiptsRegister.

This module provides:
    - BaseProgressDialog: a modal countdown dialog with a cancel button, shared by the
      interactive sign-in flow and the background sync runner.
"""
import logging
from typing import Optional

from PySide6 import QtCore, QtWidgets

WINDOW_TITLE: str = 'Receipts Register'


class BaseProgressDialog(QtWidgets.QDialog):
    """
    Modal dialog showing a countdown while a blocking operation runs elsewhere.

    Subclasses populate the layout in :meth:`_populate_content` and must create
    ``self.cancel_button``. The countdown starts when the dialog is shown.

    Signals:
        cancelled (): Emitted when the user cancels the operation.
        errorOccurred (str): Emitted to display an error message in the dialog.
    """
    cancelled = QtCore.Signal()
    errorOccurred = QtCore.Signal(str)

    def __init__(self, timeout_seconds: int = 60, status_text: str = '',
                 parent: Optional[QtWidgets.QWidget] = None) -> None:
        super().__init__(parent=parent)
        self.setWindowTitle(WINDOW_TITLE)
        self.setModal(True)

        self.timeout_seconds: int = timeout_seconds
        self.remaining: int = timeout_seconds
        self.status_text: str = status_text

        self.cancel_button: Optional[QtWidgets.QPushButton] = None

        self.countdown_timer = QtCore.QTimer(self)
        self.countdown_timer.setInterval(1000)

        self._create_ui()
        self._connect_signals()

    def _create_ui(self) -> None:
        layout = QtWidgets.QVBoxLayout(self)
        self._populate_content(layout)

    def _populate_content(self, layout: QtWidgets.QVBoxLayout) -> None:
        raise NotImplementedError('Subclasses must populate the dialog content.')

    def _connect_signals(self) -> None:
        self.countdown_timer.timeout.connect(self._tick)
        self.errorOccurred.connect(self.on_error)
        if self.cancel_button is not None:
            self.cancel_button.clicked.connect(self.on_cancel)

    def showEvent(self, event) -> None:
        self.remaining = self.timeout_seconds
        self._update_countdown_label()
        self.countdown_timer.start()
        super().showEvent(event)

    def reject(self) -> None:
        # Escape and the window close button behave like Cancel
        self.on_cancel()

    @QtCore.Slot()
    def _tick(self) -> None:
        self.remaining = max(0, self.remaining - 1)
        self._update_countdown_label()
        if self.remaining == 0:
            self.on_timeout()

    @QtCore.Slot()
    def on_cancel(self) -> None:
        logging.debug(f'{self.__class__.__name__}: cancelled by user.')
        self.countdown_timer.stop()
        self.cancelled.emit()
        super().reject()

    def finish(self) -> None:
        """Close the dialog once the operation is over, without emitting ``cancelled``."""
        self.countdown_timer.stop()
        self.done(QtWidgets.QDialog.DialogCode.Accepted)

    @QtCore.Slot(str)
    def on_error(self, msg: str) -> None:
        label = getattr(self, 'error_label', None)
        if label is not None:
            label.setText(msg)

    def _update_countdown_label(self) -> None:
        pass

    @QtCore.Slot()
    def on_timeout(self) -> None:
        self.countdown_timer.stop()
