"""ABOUT
"""

APP_NAME = "mpyzap"
VERSION = "v0.1.0"
AUTHOR = "mpyzap contributors"
AUTHOR_EMAIL = ""
DESCRIPTION = "MPY zap - browse and transfer files on MicroPython devices over raw REPL"
LONG_DESCRIPTION = DESCRIPTION
KEYWORDS = "MPY micropython raw-repl serial"
LICENSE = "MIT"
