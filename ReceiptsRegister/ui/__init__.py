"""
Qt plumbing used by the sync engine.

Modules:

- :mod:`ReceiptsRegister.ui.actions` – Application-wide signals and the open-spreadsheet slot.
- :mod:`ReceiptsRegister.ui.ui` – Base progress dialog with countdown and cancel.
- :mod:`ReceiptsRegister.ui.progress` – Run a blocking sync on a worker thread behind a progress dialog.
"""
