"""Run a blocking sync operation on a worker thread behind a progress dialog.

Example:
    .. code-block:: python

        result = start_asynchronous(session.sync, user_id, receipts, status_text='Exporting receipts.')
"""

import logging
from typing import Any, Callable, Dict, Set

from PySide6 import QtCore, QtWidgets

from .ui import BaseProgressDialog
from ..status import status

TOTAL_TIMEOUT: int = 180

# Cancelled workers are kept alive until their thread finishes
_orphaned_workers: Set[QtCore.QThread] = set()


class AsyncWorker(QtCore.QThread):
    """
    Worker thread running one blocking function.

    The function is called once. Retrying is left to the function itself.

    Signals:
        resultReady (object): Emitted with the function's result on success.
        errorOccurred (object): Emitted with the exception on failure.
    """
    resultReady = QtCore.Signal(object)
    errorOccurred = QtCore.Signal(object)

    def __init__(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        super().__init__()
        self.func = func
        self.args = args
        self.kwargs = kwargs

    def run(self) -> None:
        try:
            result = self.func(*self.args, **self.kwargs)
        except Exception as ex:
            self.errorOccurred.emit(ex)
            return
        self.resultReady.emit(result)


class SyncProgressDialog(BaseProgressDialog):
    """
    Progress dialog for a running sync.

    Signals:
        cancelled (): Emitted when the user cancels the operation.
    """

    def __init__(self, total_timeout: int = TOTAL_TIMEOUT,
                 status_text: str = 'Exporting receipts.') -> None:
        super().__init__(total_timeout, status_text)

    def _populate_content(self, layout: QtWidgets.QVBoxLayout) -> None:
        self.status_label = QtWidgets.QLabel(self.status_text)
        layout.addWidget(self.status_label, 1)

        self.error_label = QtWidgets.QLabel('')
        self.error_label.setWordWrap(True)
        layout.addWidget(self.error_label, 1)

        self.countdown_label = QtWidgets.QLabel(
            f'Please wait ({self.remaining}s).'
        )
        layout.addWidget(self.countdown_label, 1)

        self.cancel_button = QtWidgets.QPushButton('Cancel')
        layout.addWidget(self.cancel_button, 1)

    def _update_countdown_label(self) -> None:
        """Update countdown label each second."""
        self.countdown_label.setText(f'Please wait ({self.remaining}s)...')

    @QtCore.Slot()
    def on_timeout(self) -> None:
        """Handle timeout: stop timer and show timeout message."""
        self.countdown_timer.stop()
        self.countdown_label.setText('Operation timed out.')


def start_asynchronous(func: Callable[..., Any], *args: Any, total_timeout: int = TOTAL_TIMEOUT,
                       status_text: str = 'Exporting receipts.', **kwargs: Any) -> Any:
    """
    Run a blocking function on an :class:`AsyncWorker` while showing a progress dialog.

    Args:
        func: The blocking function to run.
        *args, **kwargs: Arguments passed to func.
        total_timeout (int): Total operation timeout.
        status_text (str): Label displayed in the progress dialog.

    Returns:
        The result of the function on success.

    Raises:
        status.BaseStatusException: Raised by the function.
        status.UnknownException: If the operation is cancelled, times out, or fails with another error.
    """
    dialog: SyncProgressDialog = SyncProgressDialog(
        total_timeout,
        status_text=status_text,
    )
    worker: AsyncWorker = AsyncWorker(func, *args, **kwargs)
    logging.debug(f'Running {getattr(func, "__name__", func)} on a worker thread.')

    result: Dict[str, Any] = {'data': None, 'error': None, 'done': False}
    loop: QtCore.QEventLoop = QtCore.QEventLoop()

    worker.errorOccurred.connect(
        lambda err: dialog.errorOccurred.emit(str(err)),
        QtCore.Qt.QueuedConnection
    )
    worker.resultReady.connect(lambda d: (result.update({'data': d, 'done': True}), loop.quit()))
    worker.errorOccurred.connect(lambda err: (result.update({'error': err, 'done': True}), loop.quit()))
    dialog.cancelled.connect(lambda: loop.quit())

    worker.start()
    dialog.open()

    timer: QtCore.QTimer = QtCore.QTimer()
    timer.setSingleShot(True)
    timer.setInterval(total_timeout * 1000)
    timer.timeout.connect(lambda: (dialog.on_timeout(), loop.quit()))
    timer.start()

    if not result['done']:
        loop.exec()
    timer.stop()

    if not result['done']:
        # The worker's eventual result is discarded
        worker.resultReady.disconnect()
        worker.errorOccurred.disconnect()
        _orphaned_workers.add(worker)
        worker.finished.connect(lambda: _orphaned_workers.discard(worker))
        dialog.finish()
        raise status.UnknownException('Operation cancelled or timed out.')

    worker.wait()
    dialog.finish()

    if result['error']:
        err = result['error']
        if isinstance(err, status.BaseStatusException):
            raise err
        logging.error(f'Operation failed: {err}')
        raise status.UnknownException(str(err)) from err
    return result['data']
