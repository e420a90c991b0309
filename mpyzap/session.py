"""MicroPython zap: device session"""

import mpyzap.raw_repl as _raw_repl
import mpyzap.remote as _remote
import mpyzap.transfer as _transfer


class Session():
    """One connection to one device

    Every file system operation requires raw REPL, use `raw()`:

        with session.raw():
            session.mkdir('/lib')
            session.put('/lib/x.py', 'x.py')
    """

    def __init__(self, conn, log=None, timeout=5, exclude=None):
        self._conn = conn
        self._log = log
        self._repl = _raw_repl.RawRepl(conn, log=log, timeout=timeout)
        self._fs = _remote.RemoteFs(self._repl, log=log)
        self._transfer = _transfer.Transfer(
            self._fs, log=log, exclude=exclude)

    @property
    def conn(self):
        """byte link, also used directly by interactive passthrough
        """
        return self._conn

    @property
    def repl(self):
        return self._repl

    @property
    def fs(self):
        return self._fs

    @property
    def transfer(self):
        return self._transfer

    @property
    def mode(self):
        return self._repl.mode

    def enter_raw(self):
        self._repl.enter_raw_repl()

    def exit_raw(self):
        self._repl.exit_raw_repl()

    def raw(self):
        """Context manager with raw REPL entered"""
        return self._repl.raw_repl()

    def close(self):
        self._repl.exit_raw_repl()
        self._conn.close()

    def ls(self, path=''):
        return self._fs.ls(path)

    def cwd(self):
        return self._fs.getcwd()

    def cd(self, path):
        self._fs.chdir(path)

    def mkdir(self, path, parents=False):
        if parents:
            self._fs.makedirs(path)
        else:
            self._fs.mkdir(path)

    def rm(self, path):
        self._fs.remove(path)

    def rmdir(self, path):
        self._fs.rmdir(path)

    def cat(self, path, sink):
        return self._transfer.cat(path, sink)

    def get(self, local_dst, remote_src):
        return self._transfer.get(local_dst, remote_src)

    def put(self, remote_dst, local_src):
        return self._transfer.put(remote_dst, local_src)

    def download(self, remote_root='', local_root='.'):
        self._transfer.download(remote_root, local_root)

    def upload(self, local_root='.', remote_root=''):
        self._transfer.upload(local_root, remote_root)

    def soft_reboot(self):
        self._repl.soft_reboot()
        self._fs.reset()
