"""MicroPython zap: file system commands executed on device"""

import base64 as _base64
import collections as _collections

import mpyzap.raw_repl as _raw_repl


_ENOENT = 2
_EACCES = 13
_EEXIST = 17
_ENOTDIR = 20
_ENOTEMPTY = 39


DirEntry = _collections.namedtuple('DirEntry', ['name', 'is_dir', 'size'])


def _escape_path(path):
    """Escape path for use in single-quoted python string literal"""
    return path.replace('\\', '\\\\').replace("'", "\\'")


def _basename(path):
    return path.rstrip('/').split('/')[-1] or path


def _dirname(path):
    head, _, _ = path.rstrip('/').rpartition('/')
    if head:
        return head
    return '/' if path.startswith('/') else '.'


class FsError(_raw_repl.MpyError):
    """File system operation failed on device"""
    KIND = 'other'

    def __init__(self, path, error=None):
        self._path = path
        self._error = error
        super().__init__(self.__str__())

    def _describe(self):
        return f"File system error on '{self._path}'"

    def __str__(self):
        res = self._describe()
        if self._error:
            res += f"\n{self._error.strip()}"
        return res

    @property
    def kind(self):
        return self.KIND

    @property
    def path(self):
        return self._path

    @property
    def error(self):
        return self._error


class PathNotFound(FsError):
    """Path not found"""
    KIND = 'not_found'

    def _describe(self):
        return f"Path '{self._path}' was not found"


class FileNotFound(PathNotFound):
    """File not found"""
    def _describe(self):
        return f"File '{self._path}' was not found"


class DirNotFound(PathNotFound):
    """Folder not found"""
    def _describe(self):
        return f"Dir '{self._path}' was not found"


class NotADirectory(FsError):
    """Path is not a directory"""
    KIND = 'not_a_directory'

    def _describe(self):
        return f"Path '{self._path}' is not a directory"


class DirNotEmpty(FsError):
    """Directory is not empty"""
    KIND = 'not_empty'

    def _describe(self):
        return f"Dir '{self._path}' is not empty"


class PathExists(FsError):
    """Path already exists"""
    KIND = 'already_exists'

    def _describe(self):
        return f"Path '{self._path}' already exists"


_ERRNO_ERRORS = {
    _ENOENT: PathNotFound,
    _EEXIST: PathExists,
    _ENOTDIR: NotADirectory,
    _ENOTEMPTY: DirNotEmpty,
}


def fs_error(path, err, not_found=PathNotFound, errors=None):
    """Classify CmdError raised by file system command

    Arguments:
        path: path of the operation
        err: CmdError from device
        not_found: class used for ENOENT
        errors: extra errno to class mapping for this operation

    Returns:
        FsError instance, or `err` itself when device raised non OSError
    """
    if err.errno is None:
        return err
    mapping = dict(_ERRNO_ERRORS)
    mapping[_ENOENT] = not_found
    if errors:
        mapping.update(errors)
    return mapping.get(err.errno, FsError)(path, err.error)


class RemoteFs():
    _ATTR_DIR = 0x4000
    _HELPERS = {
        'stat': f"""
def _zap_stat(p):
    try:
        r = os.stat(p)
    except OSError:
        return None
    if r[0] & {_ATTR_DIR}:
        return ('d', 0)
    return ('f', r[6])
""",
        'ls': f"""
def _zap_ls(p):
    r = []
    for e in os.ilistdir(p):
        if e[1] == {_ATTR_DIR}:
            r.append((e[0], True, None))
        else:
            r.append((e[0], False, e[3] if len(e) > 3 else None))
    return r
""",
        'makedirs': f"""
def _zap_makedirs(p):
    c = '/' if p.startswith('/') else ''
    for d in p.split('/'):
        if not d:
            continue
        c += d
        try:
            if not os.stat(c)[0] & {_ATTR_DIR}:
                raise OSError({_ENOTDIR})
        except OSError as e:
            if e.args[0] != {_ENOENT}:
                raise
            os.mkdir(c)
        c += '/'
""",
        'rmdir': f"""
def _zap_rmdir(p):
    if os.listdir(p):
        raise OSError({_ENOTEMPTY})
    os.rmdir(p)
""",
        'read': """
def _zap_read(p, o, n):
    with open(p, 'rb') as f:
        f.seek(o)
        print(str(binascii.b2a_base64(f.read(n)), 'ascii'), end='')
""",
        'write': """
def _zap_write(p, o, d):
    with open(p, 'ab' if o else 'wb') as f:
        if f.seek(0, 2) != o:
            raise OSError(22)
        f.write(binascii.a2b_base64(d))
"""}

    def __init__(self, repl, log=None):
        self._repl = repl
        self._log = log
        self._imported = []
        self._load_helpers = []

    @property
    def repl(self):
        """access to raw REPL instance
        """
        return self._repl

    def reset(self):
        """Forget modules and helpers loaded to device (after soft reboot)"""
        self._imported = []
        self._load_helpers = []

    def import_module(self, module):
        """Import module to MicroPython

        Arguments:
            module: module name to import
        """
        if module not in self._imported:
            self._repl.exec(f'import {module}')
            self._imported.append(module)

    def load_helper(self, helper):
        """Load helper function to MicroPython

        Arguments:
            helper: helper function name
        """
        if helper not in self._load_helpers:
            if helper not in self._HELPERS:
                raise _raw_repl.MpyError(f'Helper {helper} not defined')
            self.import_module('os')
            if helper in ('read', 'write'):
                self.import_module('binascii')
            self._repl.exec(self._HELPERS[helper])
            self._load_helpers.append(helper)

    def _exec_fs(self, command, path, evaluate=False, timeout=None, **classify):
        """Execute file system command, device OSError is raised as FsError"""
        try:
            if evaluate:
                return self._repl.exec_eval(command, timeout=timeout)
            return self._repl.exec(command, timeout=timeout)
        except _raw_repl.CmdError as err:
            error = fs_error(path, err, **classify)
            if error is err:
                raise
            raise error from err

    def getcwd(self):
        """Return current working directory on device"""
        self.import_module('os')
        return self._repl.exec_eval('os.getcwd()')

    def chdir(self, path):
        """Change current working directory on device"""
        self.import_module('os')
        self._exec_fs(
            f"os.chdir('{_escape_path(path)}')", path, not_found=DirNotFound)

    def stat(self, path):
        """Stat path

        Arguments:
            path: path to stat

        Returns:
            DirEntry, None if path does not exist
        """
        self.load_helper('stat')
        result = self._repl.exec_eval(f"_zap_stat('{_escape_path(path)}')")
        if result is None:
            return None
        kind, size = result
        if kind == 'd':
            return DirEntry(_basename(path), True, None)
        return DirEntry(_basename(path), False, size)

    def listdir(self, path=''):
        """List directory

        Arguments:
            path: directory to list, default: current directory

        Returns:
            list of DirEntry sorted by name
        """
        self.load_helper('ls')
        result = self._exec_fs(
            f"_zap_ls('{_escape_path(path)}')", path,
            evaluate=True, not_found=DirNotFound)
        return sorted(
            (DirEntry(name, is_dir, size) for name, is_dir, size in result),
            key=lambda entry: entry.name)

    def ls(self, path=''):
        """Names in directory, sorted"""
        return [entry.name for entry in self.listdir(path)]

    def mkdir(self, path):
        """Make single directory"""
        self.import_module('os')
        self._exec_fs(f"os.mkdir('{_escape_path(path)}')", path)

    def makedirs(self, path):
        """Make directory and all missing parents"""
        self.load_helper('makedirs')
        self._exec_fs(f"_zap_makedirs('{_escape_path(path)}')", path)

    def rmdir(self, path):
        """Remove empty directory"""
        self.load_helper('rmdir')
        # FAT reports non-empty directory as EACCES
        self._exec_fs(
            f"_zap_rmdir('{_escape_path(path)}')", path,
            not_found=DirNotFound, errors={_EACCES: DirNotEmpty})

    def remove(self, path):
        """Remove file"""
        self.import_module('os')
        self._exec_fs(
            f"os.remove('{_escape_path(path)}')", path, not_found=FileNotFound)

    def read_chunk(self, path, offset, length):
        """Read part of file

        Returns:
            bytes, shorter than `length` at end of file
        """
        self.load_helper('read')
        result = self._exec_fs(
            f"_zap_read('{_escape_path(path)}', {offset}, {length})", path,
            not_found=FileNotFound)
        return _base64.b64decode(result)

    def write_chunk(self, path, offset, data):
        """Write part of file, offset 0 truncates the file"""
        self.load_helper('write')
        encoded = _base64.b64encode(data).decode('ascii')
        try:
            self._exec_fs(
                f"_zap_write('{_escape_path(path)}', {offset}, '{encoded}')",
                path, timeout=max(self._repl.timeout, 10))
        except PathNotFound as err:
            # file is created on first write, only its directory can be missing
            raise DirNotFound(_dirname(path), err.error) from err
