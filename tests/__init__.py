"""Test package for ReceiptsRegister.

Qt runs headless and in test mode, so importing the package never touches the
user's real application data.
"""
import os

os.environ.setdefault('QT_QPA_PLATFORM', 'offscreen')

from PySide6 import QtCore

QtCore.QStandardPaths.setTestModeEnabled(True)
