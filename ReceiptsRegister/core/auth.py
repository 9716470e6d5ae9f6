"""
Google OAuth2 sign-in and access token management.

Provides the :class:`TokenProvider` used to authorize every Drive and Sheets
request, the token acquisition chain (silent refresh of a stored grant, then
interactive consent), and helpers to store or delete the grant.
"""

import dataclasses
import datetime
import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

import google.auth.exceptions
import google.auth.transport.requests
import google.oauth2.credentials
import google_auth_oauthlib.flow
from PySide6 import QtCore, QtWidgets
from googleapiclient.errors import HttpError

from ..status import status
from ..ui.ui import BaseProgressDialog

DEFAULT_SCOPES: List[str] = ['https://www.googleapis.com/auth/drive.file', ]

AUTH_TIMEOUT: int = 120


@dataclasses.dataclass(frozen=True)
class AccessToken:
    """A bearer token held in memory by a :class:`TokenProvider`."""
    value: str
    expiry: Optional[datetime.datetime] = None

    @property
    def expired(self) -> bool:
        if self.expiry is None:
            return False
        return datetime.datetime.now(datetime.timezone.utc) >= self.expiry

    @classmethod
    def from_creds(cls, creds: google.oauth2.credentials.Credentials) -> 'AccessToken':
        expiry = creds.expiry
        # google-auth keeps expiry as a naive UTC datetime
        if expiry is not None and expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=datetime.timezone.utc)
        return cls(value=creds.token, expiry=expiry)


def _is_unauthorized(ex: HttpError) -> bool:
    return getattr(ex.resp, 'status', None) == 401


class TokenProvider:
    """Caches one access token and executes requests with it.

    Args:
        authorizer: Zero-argument callable returning a fresh :class:`AccessToken`.
            Defaults to :func:`acquire_token`.
    """

    def __init__(self, authorizer: Optional[Callable[[], AccessToken]] = None) -> None:
        self._authorizer = authorizer or acquire_token
        self._lock = threading.Lock()
        self._token: Optional[AccessToken] = None

    def get_token(self) -> AccessToken:
        """
        Return the cached token, acquiring a new one if there is none or it has expired.

        Raises:
            status.AuthenticationError: If no token can be obtained.
        """
        with self._lock:
            if self._token is not None and not self._token.expired:
                return self._token

            logging.debug('No usable access token cached; acquiring a new one.')
            token = self._authorizer()
            if token is None or not token.value:
                raise status.AuthenticationError('No access token was returned.')
            self._token = token
            return self._token

    def invalidate(self) -> None:
        """Drop the cached token so the next request acquires a new one."""
        with self._lock:
            self._token = None
        logging.debug('Cached access token invalidated.')

    def _execute(self, build_request: Callable[[], Any]) -> Any:
        token = self.get_token()
        request = build_request()
        request.headers['authorization'] = f'Bearer {token.value}'
        return request.execute()

    def authenticated_request(self, build_request: Callable[[], Any]) -> Any:
        """
        Execute a Google API request with the bearer token.

        On HTTP 401 the token is invalidated, re-acquired and the request is
        rebuilt and sent exactly once more.

        Args:
            build_request: Zero-argument callable returning a new
                ``googleapiclient.http.HttpRequest``.

        Returns:
            The decoded response body.

        Raises:
            status.AuthenticationError: If the token cannot be acquired, or the retry is rejected with 401 too.
            googleapiclient.errors.HttpError: For any other non-OK response.
        """
        try:
            return self._execute(build_request)
        except HttpError as ex:
            if not _is_unauthorized(ex):
                raise
            logging.warning('Request was rejected with HTTP 401, re-acquiring the access token.')

        self.invalidate()
        try:
            return self._execute(build_request)
        except HttpError as ex:
            if not _is_unauthorized(ex):
                raise
            raise status.AuthenticationError(
                'The request was rejected again after re-acquiring the access token.'
            ) from ex


class AuthFlowWorker(QtCore.QThread):
    """
    Runs OAuth web flow in a background thread.

    Signals:
        resultReady (object): Emitted with credentials on success.
        errorOccurred (object): Emitted with the exception on failure.
    """
    resultReady = QtCore.Signal(object)
    errorOccurred = QtCore.Signal(object)

    def __init__(self, flow: google_auth_oauthlib.flow.InstalledAppFlow, parent=None):
        super().__init__(parent)
        self.flow = flow

    def run(self):
        logging.debug(f'[Thread-{threading.get_ident()}] AuthFlowWorker.run: starting local server flow')
        try:
            creds = self.flow.run_local_server(port=0)
        except Exception as ex:
            logging.debug(f'[Thread-{threading.get_ident()}] AuthFlowWorker.run: flow failed: {ex}')
            self.errorOccurred.emit(ex)
            return
        self.resultReady.emit(creds)


class AuthProgressDialog(BaseProgressDialog):
    """
    Dialog displaying sign-in progress with countdown and cancel.

    Signals:
        cancelled (): Emitted when the user cancels authentication.
    """

    def __init__(self, timeout_seconds: int = AUTH_TIMEOUT) -> None:
        super().__init__(timeout_seconds)

    def _populate_content(self, layout: QtWidgets.QVBoxLayout) -> None:
        label = QtWidgets.QLabel(
            'Please complete the Google sign-in in your browser.\n'
            'Waiting...'
        )
        layout.addWidget(label, 1)

        self.countdown_label = QtWidgets.QLabel(
            f'Time remaining: {self.remaining} seconds'
        )
        layout.addWidget(self.countdown_label)

        self.error_label = QtWidgets.QLabel('')
        self.error_label.setWordWrap(True)
        layout.addWidget(self.error_label)

        self.cancel_button = QtWidgets.QPushButton('Cancel')
        layout.addWidget(self.cancel_button, 1)

    def _update_countdown_label(self) -> None:
        self.countdown_label.setText(f'Time remaining: {self.remaining} seconds')

    @QtCore.Slot()
    def on_timeout(self) -> None:
        self.countdown_label.setText('Sign-in timed out. Please try again.')
        self.countdown_timer.stop()


def load_creds() -> Optional[google.oauth2.credentials.Credentials]:
    """
    Load the stored grant, if there is one.

    A corrupt grant file is deleted so the next sign-in starts clean.

    Returns:
        The stored credentials without an access token, or None.
    """
    from ..settings import lib
    if not lib.settings.creds_path.exists():
        logging.debug('No stored Google grant found.')
        return None

    try:
        logging.debug(f'Loading credentials from {lib.settings.creds_path}...')
        creds = google.oauth2.credentials.Credentials.from_authorized_user_file(
            str(lib.settings.creds_path)
        )
    except (ValueError, json.JSONDecodeError) as ex:
        logging.error(f'Failed to load the stored grant, it will be removed: {ex}')
        lib.settings.creds_path.unlink(missing_ok=True)
        return None

    if not set(DEFAULT_SCOPES).issubset(set(creds.scopes or [])):
        logging.debug('Stored grant has mismatched scopes. Re-authentication required.')
        return None

    logging.debug(f'Credentials loaded successfully. Scopes={creds.scopes}')
    return creds


def save_creds(creds: google.oauth2.credentials.Credentials) -> None:
    """
    Save the grant to the configured creds file.

    The access token and its expiry are stripped, only the refresh grant is stored.

    Args:
        creds: The credentials to save.
    """
    from ..settings import lib
    data: str = creds.to_json(strip=['token', 'expiry'])
    with open(lib.settings.creds_path, 'w', encoding='utf-8') as f:
        f.write(data)

    logging.debug(f'Credentials saved to {lib.settings.creds_path}.')


def refresh_creds(creds: google.oauth2.credentials.Credentials) -> Optional[google.oauth2.credentials.Credentials]:
    """
    Silently refresh a stored grant.

    Returns:
        The refreshed credentials, or None if the grant was revoked or expired.

    Raises:
        status.AuthenticationError: If the token endpoint could not be reached.
    """
    if not creds.refresh_token:
        logging.debug('Stored grant has no refresh token.')
        return None
    try:
        creds.refresh(google.auth.transport.requests.Request())
    except google.auth.exceptions.RefreshError as ex:
        logging.error(f'Refresh failed: {ex}, attempting re-authentication.')
        return None
    except google.auth.exceptions.TransportError as ex:
        raise status.AuthenticationError(f'Could not reach the Google token endpoint: {ex}') from ex

    logging.debug('Successfully refreshed credentials.')
    save_creds(creds)
    return creds


def _get_flow() -> google_auth_oauthlib.flow.InstalledAppFlow:
    from ..settings import lib
    if not lib.settings.client_secret_path.exists():
        raise status.ClientSecretNotFoundException

    lib.settings.validate_client_secret()
    data: Dict[str, Any] = lib.settings.get_section('client_secret')
    return google_auth_oauthlib.flow.InstalledAppFlow.from_client_config(data, scopes=DEFAULT_SCOPES)


def _is_gui_thread() -> bool:
    app = QtWidgets.QApplication.instance()
    if not isinstance(app, QtWidgets.QApplication):
        return False
    return QtCore.QThread.currentThread() == app.thread()


def _run_flow(flow: google_auth_oauthlib.flow.InstalledAppFlow,
              timeout_seconds: int = AUTH_TIMEOUT) -> google.oauth2.credentials.Credentials:
    """Run the consent flow synchronously in the calling thread."""
    logging.debug('Starting synchronous OAuth flow...')
    try:
        return flow.run_local_server(port=0, timeout_seconds=timeout_seconds)
    except Exception as ex:
        raise status.AuthenticationError(f'OAuth flow failed: {ex}') from ex


def _run_flow_with_dialog(flow: google_auth_oauthlib.flow.InstalledAppFlow,
                          timeout_seconds: int = AUTH_TIMEOUT) -> google.oauth2.credentials.Credentials:
    """Run the consent flow on a worker thread behind a cancellable countdown dialog."""
    logging.debug('Starting OAuth flow with progress dialog...')
    dialog = AuthProgressDialog(timeout_seconds=timeout_seconds)

    auth_worker = AuthFlowWorker(flow)
    result: Dict[str, Any] = {'creds': None, 'error': None, 'cancelled': False}
    loop = QtCore.QEventLoop()

    auth_worker.resultReady.connect(lambda c: (result.update({'creds': c}), loop.quit()))
    auth_worker.errorOccurred.connect(lambda err: (result.update({'error': err}), loop.quit()))
    dialog.cancelled.connect(lambda: (result.update({'cancelled': True}), loop.quit()))

    auth_worker.start()

    timer = QtCore.QTimer()
    timer.setSingleShot(True)
    timer.timeout.connect(lambda: (dialog.on_timeout(), loop.quit()))
    timer.start(timeout_seconds * 1000)

    dialog.show()
    loop.exec()
    timer.stop()
    dialog.finish()

    finished = result['creds'] is not None or result['error'] is not None
    if not finished and auth_worker.isRunning():
        auth_worker.terminate()
        auth_worker.wait()
        if result['cancelled']:
            raise status.AuthenticationError('Sign-in was cancelled.')
        raise status.AuthenticationError('OAuth flow timed out (no response from browser).')

    auth_worker.wait()

    logging.debug('OAuth flow completed.')
    if result['error']:
        raise status.AuthenticationError(f'OAuth flow failed: {result["error"]}')
    return result['creds']


def authenticate() -> google.oauth2.credentials.Credentials:
    """
    Run the interactive consent flow and store the resulting grant.

    A countdown dialog is shown when called on the GUI thread of a running
    QApplication. Otherwise the flow runs synchronously.

    Returns:
        google.oauth2.credentials.Credentials: The authenticated credentials.

    Raises:
        status.AuthenticationError: If the client secret is missing or invalid, or
            authentication fails, is cancelled or times out.
    """
    try:
        flow = _get_flow()
    except (status.ClientSecretNotFoundException, status.ClientSecretInvalidException) as ex:
        raise status.AuthenticationError(str(ex)) from ex

    from ..ui.actions import signals
    signals.authenticationRequested.emit()

    if _is_gui_thread():
        creds = _run_flow_with_dialog(flow)
    else:
        creds = _run_flow(flow)

    if not creds or not creds.token:
        raise status.AuthenticationError('Authentication was cancelled or no credentials obtained.')

    logging.debug('Saving credentials...')
    save_creds(creds)
    return creds


def get_creds(interactive: bool = True) -> google.oauth2.credentials.Credentials:
    """
    Obtain credentials with a fresh access token.

    The stored grant is refreshed silently when possible. Otherwise the user is
    asked to sign in, unless ``interactive`` is False.

    Raises:
        status.AuthenticationError: If no credentials can be obtained.
    """
    creds = load_creds()
    if creds is not None:
        refreshed = refresh_creds(creds)
        if refreshed is not None and refreshed.token:
            return refreshed

    if not interactive:
        raise status.AuthenticationError('Interactive sign-in required.')

    logging.debug('Attempting to authenticate...')
    return authenticate()


def acquire_token() -> AccessToken:
    """
    Default authorizer of :class:`TokenProvider`.

    Raises:
        status.AuthenticationError: If no token can be obtained.
    """
    return AccessToken.from_creds(get_creds())


def sign_out() -> None:
    """
    Delete the stored grant to sign out the user.
    """
    from ..settings import lib
    if lib.settings.creds_path.exists():
        logging.debug(f'Deleting {lib.settings.creds_path}...')
        lib.settings.creds_path.unlink()
        logging.debug('Successfully signed out.')
    else:
        logging.debug('No credentials file found. No action taken.')
