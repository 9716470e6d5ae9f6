"""
Logging subsystem for the sync engine.

Modules:

- :mod:`ReceiptsRegister.log.log` – Root logger setup and the Qt message bridge.
"""
