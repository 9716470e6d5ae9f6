"""Status definitions and exceptions for ReceiptsRegister.

This module provides:
    - Status: enumeration of possible sync states
    - STATUS_MESSAGE: user-facing messages for each status
    - get_message: retrieve the message for a status
    - BaseStatusException: base exception carrying a Status
    - Specific exceptions raised by the auth, locator, writer and session layers
"""
import enum
import logging
from typing import Dict, Optional


class Status(enum.StrEnum):
    """Enumeration of sync status codes."""
    UnknownStatus = enum.auto()

    # Config status
    SyncConfigNotFound = enum.auto()
    SyncConfigInvalid = enum.auto()

    # Authentication status
    ClientSecretNotFound = enum.auto()
    ClientSecretInvalid = enum.auto()
    NotAuthenticated = enum.auto()

    # Remote spreadsheet status
    SpreadsheetCreateFailed = enum.auto()
    AppendFailed = enum.auto()

    # Caller-side state
    SyncStateInvalid = enum.auto()
    SyncInProgress = enum.auto()


STATUS_MESSAGE: Dict[Status, str] = {
    Status.UnknownStatus: 'Unknown status. Please check the settings.',

    Status.SyncConfigNotFound: 'Could not find the sync config.',
    Status.SyncConfigInvalid: 'The sync config seems to be incomplete, or contains invalid values.',

    Status.ClientSecretNotFound: 'Could not find the google client secret. Have you set up a valid Google client secret?',
    Status.ClientSecretInvalid: 'Could not verify the client secret. Have you set up a valid Google client secret?',
    Status.NotAuthenticated: 'Sign-in required. Please sign in to your Google account.',

    Status.SpreadsheetCreateFailed: 'Could not create the receipts spreadsheet.',
    Status.AppendFailed: 'Could not write receipts to the spreadsheet.',

    Status.SyncStateInvalid: 'The stored sync state is invalid. It will be rebuilt on the next sync.',
    Status.SyncInProgress: 'A sync is already in progress for this account.',
}


def get_message(status: Status) -> str:
    """
    Get the message for a given status.

    Args:
        status (Status): The status enum.

    Returns:
        str: The message associated with the status.
    """
    return STATUS_MESSAGE.get(status, 'Unknown status')


class BaseStatusException(Exception):
    """Base exception for status-based errors in ReceiptsRegister.

    Attributes:
        status (Status): Status code associated with this error.
        status_message (str): User-facing message for the status.

    Args:
        message (str): Optional additional context for the error.
    """
    status = Status.UnknownStatus

    def __init__(self, message: Optional[str] = None):
        self.status_message = get_message(self.status)
        exception_message = f'{self.status_message} {message}' if message else self.status_message
        super().__init__(exception_message)

        logging.error(exception_message)

        from ..ui.actions import signals
        signals.error.emit(message or self.status_message)


class UnknownException(BaseStatusException):
    """Exception for an unknown error during status processing."""
    pass


class SyncConfigNotFoundException(BaseStatusException):
    """Exception raised when the sync configuration file cannot be found."""
    status = Status.SyncConfigNotFound


class SyncConfigInvalidException(BaseStatusException):
    """Exception raised when the sync configuration is invalid or malformed."""
    status = Status.SyncConfigInvalid


class ClientSecretNotFoundException(BaseStatusException):
    """Exception raised when the Google OAuth client secret file cannot be found."""
    status = Status.ClientSecretNotFound


class ClientSecretInvalidException(BaseStatusException):
    """Exception raised when the Google OAuth client secret is invalid or malformed."""
    status = Status.ClientSecretInvalid


class AuthenticationError(BaseStatusException):
    """No access token could be obtained, or authorization failed again after the one retry."""
    status = Status.NotAuthenticated


class SpreadsheetCreateError(BaseStatusException):
    """Exception raised when the receipts spreadsheet could not be created."""
    status = Status.SpreadsheetCreateFailed


class AppendError(BaseStatusException):
    """A batch write to the spreadsheet failed.

    The remote error text is kept verbatim in :attr:`remote_message` and is used
    as the exception message.
    """
    status = Status.AppendFailed

    def __init__(self, remote_message: Optional[str] = None):
        self.remote_message = remote_message or get_message(self.status)
        super().__init__(self.remote_message)

    def __str__(self) -> str:
        return self.remote_message


class SyncStateInvalidException(BaseStatusException):
    """Exception raised when a persisted sync state row cannot be read."""
    status = Status.SyncStateInvalid


class SyncInProgressError(BaseStatusException):
    """Exception raised when a second sync is started for a user while one is running."""
    status = Status.SyncInProgress
