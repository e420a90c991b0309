"""MPYzap"""

from mpyzap.conn import ConnError, Timeout
from mpyzap.conn_serial import ConnSerial
from mpyzap.raw_repl import (
    MpyError, ProtocolError, ProtocolTimeout, UnexpectedAck, CmdError,
    RawRepl, ExecResult)
from mpyzap.remote import (
    RemoteFs, DirEntry, FsError, PathNotFound, FileNotFound, DirNotFound,
    NotADirectory, DirNotEmpty, PathExists)
from mpyzap.transfer import Transfer, TransferError
from mpyzap.session import Session
from mpyzap.logger import SimpleColorLogger
