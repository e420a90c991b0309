"""MicroPython zap: file transfers between host and device"""

import fnmatch as _fnmatch
import os as _os

import mpyzap.raw_repl as _raw_repl
import mpyzap.remote as _remote
import mpyzap.utils as _utils


class TransferError(_raw_repl.MpyError):
    """Tree transfer aborted on one entry"""
    def __init__(self, src, dst, cause):
        self._src = src
        self._dst = dst
        self._cause = cause
        super().__init__(self.__str__())

    def __str__(self):
        return f"Transfer '{self._src}' -> '{self._dst}' failed: {self._cause}"

    @property
    def src(self):
        return self._src

    @property
    def dst(self):
        return self._dst

    @property
    def cause(self):
        return self._cause


class Transfer():
    # raw bytes per round-trip, 684 characters once base64 encoded
    CHUNK_SIZE = 512
    DEFAULT_EXCLUDE = ('__pycache__', '.git', '.svn')

    def __init__(self, remote_fs, log=None, exclude=None):
        self._fs = remote_fs
        self._log = log
        self._exclude = set(self.DEFAULT_EXCLUDE)
        if exclude:
            self._exclude.update(exclude)

    def _verbose(self, msg, level=1):
        if self._log:
            self._log.verbose(msg, level)

    def _is_excluded(self, name):
        return any(_fnmatch.fnmatch(name, pattern) for pattern in self._exclude)

    def cat(self, path, sink):
        """Copy remote file to writable binary `sink`

        Returns:
            number of bytes copied
        """
        offset = 0
        while True:
            data = self._fs.read_chunk(path, offset, self.CHUNK_SIZE)
            sink.write(data)
            offset += len(data)
            if len(data) < self.CHUNK_SIZE:
                return offset

    def get(self, local_dst, remote_src):
        """Download remote file, local file is truncated first"""
        with open(local_dst, 'wb') as dst_file:
            size = self.cat(remote_src, dst_file)
        self._verbose(
            f"GET: {_utils.format_size(size):>5} {remote_src} -> {local_dst}")
        return size

    def put(self, remote_dst, local_src):
        """Upload local file, remote file is truncated first"""
        offset = 0
        with open(local_src, 'rb') as src_file:
            while True:
                data = src_file.read(self.CHUNK_SIZE)
                if offset and not data:
                    break
                self._fs.write_chunk(remote_dst, offset, data)
                offset += len(data)
                if len(data) < self.CHUNK_SIZE:
                    break
        self._verbose(
            f"PUT: {_utils.format_size(offset):>5} {local_src} -> {remote_dst}")
        return offset

    def _walk_remote(self, path, rel_path, tree):
        for entry in self._fs.listdir(path):
            entry_path = _utils.join_remote_path(path, entry.name)
            entry_rel = _utils.join_remote_path(rel_path, entry.name)
            tree.append((entry_rel, entry.is_dir))
            if entry.is_dir:
                self._walk_remote(entry_path, entry_rel, tree)

    def remote_tree(self, root=''):
        """Walk remote directory

        Returns:
            list of (relative_path, is_dir), depth-first, sorted by name,
            directory before its content
        """
        tree = []
        self._walk_remote(root, '', tree)
        return tree

    def _walk_local(self, path, rel_path, tree):
        for name in sorted(_os.listdir(path)):
            if self._is_excluded(name):
                continue
            entry_path = _os.path.join(path, name)
            entry_rel = _utils.join_remote_path(rel_path, name)
            is_dir = _os.path.isdir(entry_path)
            tree.append((entry_rel, is_dir))
            if is_dir:
                self._walk_local(entry_path, entry_rel, tree)

    def local_tree(self, root='.'):
        """Walk local directory, same ordering as remote_tree()"""
        tree = []
        self._walk_local(root, '', tree)
        return tree

    def download(self, remote_root='', local_root='.'):
        """Copy remote directory tree into local directory"""
        self._verbose(f"DOWNLOAD: {remote_root or '.'} -> {local_root}")
        _os.makedirs(local_root, exist_ok=True)
        for rel_path, is_dir in self.remote_tree(remote_root):
            src = _utils.join_remote_path(remote_root, rel_path)
            dst = _os.path.join(local_root, *rel_path.split('/'))
            try:
                if is_dir:
                    self._verbose(f"MKDIR: {dst}", 2)
                    _os.makedirs(dst, exist_ok=True)
                else:
                    self.get(dst, src)
            except (_raw_repl.MpyError, OSError) as err:
                raise TransferError(src, dst, err) from err

    def _ensure_remote_dir(self, path):
        entry = self._fs.stat(path)
        if entry is None:
            self._verbose(f"MKDIR: {path}", 2)
            self._fs.mkdir(path)
        elif not entry.is_dir:
            raise _remote.NotADirectory(path)

    def upload(self, local_root='.', remote_root=''):
        """Copy local directory tree into remote directory"""
        self._verbose(f"UPLOAD: {local_root} -> {remote_root or '.'}")
        if remote_root:
            self._ensure_remote_dir(remote_root)
        for rel_path, is_dir in self.local_tree(local_root):
            src = _os.path.join(local_root, *rel_path.split('/'))
            dst = _utils.join_remote_path(remote_root, rel_path)
            try:
                if is_dir:
                    self._ensure_remote_dir(dst)
                else:
                    self.put(dst, src)
            except (_raw_repl.MpyError, OSError) as err:
                raise TransferError(src, dst, err) from err
