"""
Settings package: configuration API and localisation.

This package provides:

- :mod:`ReceiptsRegister.settings.lib` – Config paths, sync.json schema validation and the client secret.
- :mod:`ReceiptsRegister.settings.locale` – Translators for the spreadsheet title, header labels and messages.
"""
