"""
ReceiptsRegister: exports receipt records to a per-user Google Sheets spreadsheet.

This package provides:

- :mod:`ReceiptsRegister.core` – Authentication, spreadsheet lookup, deduplication and row export.
- :mod:`ReceiptsRegister.settings` – Settings management, schema validation and translations.
- :mod:`ReceiptsRegister.status` – Status codes and the exceptions raised by the sync engine.
- :mod:`ReceiptsRegister.log` – Root logger setup and the Qt message bridge.
- :mod:`ReceiptsRegister.ui` – Qt signals, consent and progress dialogs.

Use :class:`ReceiptsRegister.core.session.SyncSession` to export receipts for a user.
"""

import sys

# Fail on Python < 3.11
if not (sys.version_info.major == 3 and sys.version_info.minor >= 11):
    raise RuntimeError('ReceiptsRegister requires Python 3.11 or higher.')

__version__ = '0.1.0'
__description__ = 'ReceiptsRegister: exports receipt records to a per-user Google Sheets spreadsheet.'

from .log import log

log.setup_logging()
