"""MicroPython zap: raw REPL state machine"""

import ast as _ast
import collections as _collections
import contextlib as _contextlib
import re as _re

import mpyzap.conn as _conn


CTRL_A = b'\x01'  # enter raw REPL
CTRL_B = b'\x02'  # exit raw REPL
CTRL_C = b'\x03'  # interrupt
CTRL_D = b'\x04'  # execute, end of output, soft reboot

MODE_INTERACTIVE = 'interactive'
MODE_RAW = 'raw'

_RAW_BANNER = b'raw REPL; CTRL-B to exit\r\n>'
_ACK = b'OK'
_PROMPT = b'>'
_RESERVED = (CTRL_A, CTRL_B, CTRL_C, CTRL_D)

_OSERROR_RE = _re.compile(r'OSError: (?:\[Errno )?(\d+)')
_OSERROR_MESSAGES = {
    1: 'Operation not permitted',
    2: 'No such file or directory',
    5: 'I/O error',
    9: 'Bad file descriptor',
    12: 'Out of memory',
    13: 'Permission denied',
    17: 'File exists',
    19: 'No such device',
    20: 'Not a directory',
    21: 'Is a directory',
    22: 'Invalid argument',
    28: 'No space left on device',
    30: 'Read-only filesystem',
    39: 'Directory not empty',
}


ExecResult = _collections.namedtuple('ExecResult', ['output', 'error'])


class MpyError(Exception):
    """General MPY error"""


class ProtocolError(MpyError):
    """Raw REPL framing is broken, raw REPL must be entered again"""


class ProtocolTimeout(ProtocolError):
    """Device did not send expected data before deadline"""


class UnexpectedAck(ProtocolError):
    """Device did not acknowledge command with OK"""
    def __init__(self, ack):
        self._ack = ack
        super().__init__(f"Expected {_ACK!r} acknowledge, received {ack!r}")

    @property
    def ack(self):
        return self._ack


class CmdError(MpyError):
    """Command raised exception on device"""
    def __init__(self, cmd, result, error):
        self._cmd = cmd
        self._result = result
        if isinstance(error, bytes):
            error = error.decode('utf-8', 'backslashreplace')
        self._error = error
        match = _OSERROR_RE.search(error)
        self._errno = int(match.group(1)) if match else None
        super().__init__(self.__str__())

    def __str__(self):
        message = _OSERROR_MESSAGES.get(self._errno)
        if message:
            return f'{message} (errno {self._errno})'
        res = f'Command:\n  {self._cmd}\n'
        if self._result:
            res += f'Result:\n  {self._result}\n'
        if self._error:
            res += f'Error:\n  {self._error}'
        return res

    @property
    def cmd(self):
        return self._cmd

    @property
    def result(self):
        return self._result

    @property
    def error(self):
        return self._error

    @property
    def errno(self):
        return self._errno


class RawRepl():
    """Raw REPL session over a byte link

    Mode is MODE_INTERACTIVE, MODE_RAW or None when the link state is
    unknown (after protocol error or soft reboot).
    """

    def __init__(self, conn, log=None, timeout=5):
        self._conn = conn
        self._log = log
        self._timeout = timeout
        self._mode = MODE_INTERACTIVE

    @property
    def conn(self):
        return self._conn

    @property
    def mode(self):
        return self._mode

    @property
    def timeout(self):
        return self._timeout

    def enter_raw_repl(self):
        """Enter raw REPL, interrupting any running program

        Raises:
            ProtocolTimeout when raw REPL banner was not received
        """
        if self._mode == MODE_RAW:
            return
        if self._log:
            self._log.info('ENTER RAW REPL')
        self._conn.flush()
        self._conn.write(CTRL_C)
        self._conn.write(CTRL_C)
        self._conn.write(CTRL_A)
        try:
            self._conn.read_until(_RAW_BANNER, self._timeout)
        except _conn.Timeout as err:
            self._mode = None
            raise ProtocolTimeout(f"Raw REPL not entered: {err}") from err
        self._mode = MODE_RAW

    def exit_raw_repl(self):
        """Leave raw REPL, response is not awaited"""
        if self._mode == MODE_INTERACTIVE:
            return
        if self._log:
            self._log.info('EXIT RAW REPL')
        try:
            self._conn.write(CTRL_B)
        except _conn.ConnError as err:
            if self._log:
                self._log.warning("Exit raw REPL failed: %s", err)
        self._mode = MODE_INTERACTIVE

    @_contextlib.contextmanager
    def raw_repl(self):
        """Context with raw REPL entered, always exited afterwards"""
        self.enter_raw_repl()
        try:
            yield self
        finally:
            self.exit_raw_repl()

    def _check_raw(self, action):
        if self._mode != MODE_RAW:
            raise ProtocolError(f"Can not {action}, raw REPL is not entered")

    def soft_reboot(self):
        """Soft reboot device, new prompt is not awaited"""
        self._check_raw('soft reboot')
        if self._log:
            self._log.info('SOFT REBOOT')
        self._conn.write(CTRL_D)
        self._mode = None

    def _exchange(self, command, timeout):
        self._conn.write(command)
        self._conn.write(CTRL_D)
        try:
            ack = self._conn.read_bytes(len(_ACK), timeout)
            if ack != _ACK:
                raise UnexpectedAck(ack)
            output = self._conn.read_until(CTRL_D, timeout)
            error = self._conn.read_until(CTRL_D + _PROMPT, timeout)
        except _conn.Timeout as err:
            raise ProtocolTimeout(f"Command result not received: {err}") from err
        return output, error

    def exec_raw(self, command, timeout=None):
        """Execute command

        Arguments:
            command: code to execute (str or bytes)
            timeout: maximum waiting time for each part of response

        Returns:
            ExecResult with STDOUT bytes and error traceback (or None)

        Raises:
            ProtocolError when response framing is broken
        """
        self._check_raw('execute command')
        if isinstance(command, str):
            command = command.encode('utf-8')
        for ctrl in _RESERVED:
            if ctrl in command:
                raise MpyError(f"Command contains control byte {ctrl!r}")
        if timeout is None:
            timeout = self._timeout
        if self._log:
            self._log.info("CMD: %s", command)
        try:
            output, error = self._exchange(command, timeout)
        except ProtocolError:
            self._mode = None
            raise
        if output and self._log:
            self._log.info("RES: %s", output)
        if not error:
            return ExecResult(output, None)
        error = error.decode('utf-8', 'backslashreplace')
        if self._log:
            self._log.debug("ERR: %s", error)
        return ExecResult(output, error)

    def exec(self, command, timeout=None):
        """Execute command and return its STDOUT

        Raises:
            CmdError when command raised exception on device
        """
        result = self.exec_raw(command, timeout)
        if result.error is not None:
            raise CmdError(command, result.output, result.error)
        return result.output

    def exec_eval(self, expression, timeout=None):
        """Evaluate expression on device, return it as python object"""
        result = self.exec(f'print(repr({expression}))', timeout)
        return _ast.literal_eval(result.decode('utf-8').strip())
