"""
Core package for ReceiptsRegister providing the receipt export engine.

This package includes:

- :mod:`ReceiptsRegister.core.records` – Receipt records, sync state and sync results.
- :mod:`ReceiptsRegister.core.service` – Drive and Sheets API resources.
- :mod:`ReceiptsRegister.core.auth` – Google OAuth2 sign-in and the access token provider.
- :mod:`ReceiptsRegister.core.locator` – Finding or creating the receipts spreadsheet.
- :mod:`ReceiptsRegister.core.writer` – Header row and receipt row writers.
- :mod:`ReceiptsRegister.core.dedup` – Filtering out receipts already in the spreadsheet.
- :mod:`ReceiptsRegister.core.sync` – The sync orchestrator.
- :mod:`ReceiptsRegister.core.state` – Local SQLite store of per-user sync state.
- :mod:`ReceiptsRegister.core.session` – Per-user single-flight sync sessions.
"""
