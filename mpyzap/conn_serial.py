"""MicroPython zap: serial connector"""

import serial as _serial
import mpyzap.conn as _conn


class ConnSerial(_conn.Conn):
    def __init__(self, log=None, **serial_config):
        super().__init__(log)
        self._serial = None
        try:
            self._serial = _serial.Serial(**serial_config)
        except _serial.SerialException as err:
            raise _conn.ConnError(
                f"Error opening serial port {serial_config.get('port')}") from err
        if self._log:
            self._log.info(
                "Connected to %s at %s baud",
                self._serial.port, self._serial.baudrate)

    def __del__(self):
        self.close()

    def close(self):
        if self._serial:
            self._serial.close()
            self._serial = None

    def _read_available(self):
        if self._serial is None:
            raise _conn.ConnError("Serial port is closed")
        try:
            in_waiting = self._serial.in_waiting
            if in_waiting > 0:
                return self._serial.read(in_waiting)
        except (OSError, _serial.SerialException) as err:
            raise _conn.ConnError(f"Serial port error: {err}") from err
        return b''

    def _write_raw(self, data):
        if self._serial is None:
            raise _conn.ConnError("Serial port is closed")
        try:
            return self._serial.write(data)
        except (OSError, _serial.SerialException) as err:
            raise _conn.ConnError(f"Serial port error: {err}") from err
