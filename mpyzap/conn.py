"""MicroPython zap: abstract byte link"""

import time as _time


class ConnError(Exception):
    """General connection error"""


class Timeout(ConnError):
    """Timeout"""


class Conn():
    """Duplex byte link with buffered framing reads

    Subclasses provide only the transport: `_read_available()` and
    `_write_raw()`.
    """

    def __init__(self, log=None):
        self._log = log
        self._buffer = bytearray(b'')

    def _read_available(self):
        """Return bytes waiting on the link (empty bytes when none)"""
        raise NotImplementedError

    def _write_raw(self, data):
        """Write bytes to the link, return number of bytes written"""
        raise NotImplementedError

    def close(self):
        """Release the link"""

    def _read_to_buffer(self):
        data = self._read_available()
        if data:
            self._buffer += data
            return True
        return False

    def read(self):
        """Read available data from device, None if there is nothing
        """
        self._read_to_buffer()
        if self._buffer:
            data = bytes(self._buffer)
            del self._buffer[:]
            return data
        return None

    def flush(self):
        """Discard everything received so far, return discarded bytes"""
        self._read_to_buffer()
        data = bytes(self._buffer)
        del self._buffer[:]
        if data and self._log:
            self._log.debug("flushed: %s", data)
        return data

    def write(self, data, chunk_size=128, delay=0.01):
        """Write to device in small chunks
        """
        if self._log:
            self._log.debug("wr: %s", bytes(data))
        while data:
            chunk = data[:chunk_size]
            count = self._write_raw(chunk)
            data = data[count:]
            if data:
                _time.sleep(delay)

    def _wait_for(self, ready, timeout):
        deadline = None if timeout is None else _time.time() + timeout
        while True:
            self._read_to_buffer()
            if ready():
                return
            if deadline is not None and _time.time() > deadline:
                if self._buffer:
                    raise Timeout(
                        f"During timeout received: {bytes(self._buffer)}")
                raise Timeout("No data received")
            _time.sleep(.01)

    def read_until(self, end, timeout=1):
        """Read until `end`, return data before it (`end` is consumed)

        Raises:
            Timeout when `end` did not arrive before deadline
        """
        if self._log:
            self._log.debug("wait for %s", end)
        self._wait_for(lambda: end in self._buffer, timeout)
        index = self._buffer.index(end)
        data = bytes(self._buffer[:index])
        del self._buffer[:index + len(end)]
        if self._log:
            self._log.debug("rd: %s", data + end)
        return data

    def read_bytes(self, count, timeout=1):
        """Read exactly `count` bytes

        Raises:
            Timeout when less than `count` bytes arrived before deadline
        """
        self._wait_for(lambda: len(self._buffer) >= count, timeout)
        data = bytes(self._buffer[:count])
        del self._buffer[:count]
        if self._log:
            self._log.debug("rd: %s", data)
        return data
