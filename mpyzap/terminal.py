"""MicroPython zap: interactive terminal passthrough"""

import contextlib as _contextlib
import sys as _sys
import threading as _threading
import time as _time

import mpyzap.conn as _conn

AVAILABLE = False

try:
    import termios as _termios
    import tty as _tty

    AVAILABLE = True
except ImportError:
    pass


CTRL_RIGHT_BRACKET = b'\x1d'


@_contextlib.contextmanager
def raw_console(stream=None):
    """Switch local terminal to raw mode for the duration of context"""
    if stream is None:
        stream = _sys.stdin
    if not AVAILABLE or not stream.isatty():
        yield
        return
    fd = stream.fileno()
    orig_attr = _termios.tcgetattr(fd)
    _tty.setraw(fd)
    try:
        yield
    finally:
        _termios.tcsetattr(fd, _termios.TCSANOW, orig_attr)


class Passthrough:
    """Copy console input to device and device output to console

    Both directions run in own thread, `run()` returns when either
    side reaches end of stream.
    """

    def __init__(
            self, conn, console_in, console_out, log=None,
            exit_char=None, poll_interval=.01):
        self._conn = conn
        self._console_in = console_in
        self._console_out = console_out
        self._log = log
        self._exit_char = exit_char
        self._poll_interval = poll_interval
        self._stop = _threading.Event()

    def _console_to_device(self):
        try:
            while not self._stop.is_set():
                data = self._console_in.read(1)
                if not data:
                    if self._log:
                        self._log.info('console closed')
                    break
                if self._exit_char and self._exit_char in data:
                    break
                self._conn.write(data)
        except _conn.ConnError as err:
            if self._log:
                self._log.info('device closed: %s', err)
        finally:
            self._stop.set()

    def _copy_device(self):
        data = self._conn.read()
        if data is None:
            return False
        self._console_out.write(data)
        self._console_out.flush()
        return True

    def _device_to_console(self):
        try:
            while not self._stop.is_set():
                if not self._copy_device():
                    _time.sleep(self._poll_interval)
            self._copy_device()
        except _conn.ConnError as err:
            if self._log:
                self._log.info('device closed: %s', err)
        finally:
            self._stop.set()

    def run(self):
        to_device = _threading.Thread(
            target=self._console_to_device, name='console-to-device',
            daemon=True)
        to_console = _threading.Thread(
            target=self._device_to_console, name='device-to-console',
            daemon=True)
        to_device.start()
        to_console.start()
        self._stop.wait()
        # console read may block forever, only device side is joined
        to_console.join()
