"""Simple color logger for mpyzap"""

import os as _os
import sys as _sys


class SimpleColorLogger():
    _RESET = '\033[0m'
    _BOLD_RED = '\033[1;31m'
    _BOLD_YELLOW = '\033[1;33m'
    _BOLD_MAGENTA = '\033[1;35m'
    _BOLD_BLUE = '\033[1;34m'
    _BOLD_GREEN = '\033[1;32m'

    # level: (minimal loglevel, color, prefix without color)
    _LEVELS = {
        'error': (1, _BOLD_RED, 'E'),
        'warning': (2, _BOLD_YELLOW, 'W'),
        'info': (3, _BOLD_MAGENTA, 'I'),
        'debug': (4, _BOLD_BLUE, 'D'),
    }

    def __init__(self, loglevel=1, verbose_level=0, stream=None):
        self._loglevel = loglevel
        self._verbose_level = verbose_level
        self._stream = stream if stream is not None else _sys.stderr
        is_tty = hasattr(self._stream, 'isatty') and self._stream.isatty()
        self._color = (
            is_tty
            and _os.environ.get('NO_COLOR') is None
            and _os.environ.get('TERM') != 'dumb'
            and _os.environ.get('CI') is None
        )

    def log(self, msg):
        print(msg, file=self._stream, flush=True)

    def _emit(self, level, msg, args):
        min_level, color, prefix = self._LEVELS[level]
        if self._loglevel < min_level:
            return
        if args:
            msg = msg % args
        if self._color:
            self.log(f"{color}{msg}{self._RESET}")
        else:
            self.log(f"{prefix}: {msg}")

    def error(self, msg, *args):
        self._emit('error', msg, args)

    def warning(self, msg, *args):
        self._emit('warning', msg, args)

    def info(self, msg, *args):
        self._emit('info', msg, args)

    def debug(self, msg, *args):
        self._emit('debug', msg, args)

    def verbose(self, msg, level=1):
        """Print progress message if verbose_level >= level"""
        if self._verbose_level < level:
            return
        if self._color:
            msg = f"{self._BOLD_GREEN}{msg}{self._RESET}"
        self.log(msg)
