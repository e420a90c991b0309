"""Tests for file transfers"""

import io
import os
import tempfile
import unittest
from unittest.mock import Mock

from mpyzap.raw_repl import RawRepl, ProtocolTimeout
from mpyzap.remote import RemoteFs, FileNotFound, NotADirectory
from mpyzap.transfer import Transfer, TransferError
from tests.fake_device import FakeDevice


CHUNK = Transfer.CHUNK_SIZE


class TransferTestCase(unittest.TestCase):
    def setUp(self):
        self._device_tmp = tempfile.TemporaryDirectory()
        self._local_tmp = tempfile.TemporaryDirectory()
        self.device_root = self._device_tmp.name
        self.local_root = self._local_tmp.name
        self.device = FakeDevice(self.device_root)
        self.repl = RawRepl(self.device, timeout=1)
        self.repl.enter_raw_repl()
        self.fs = RemoteFs(self.repl)
        self.transfer = Transfer(self.fs)

    def tearDown(self):
        self._device_tmp.cleanup()
        self._local_tmp.cleanup()

    def device_path(self, *parts):
        return os.path.join(self.device_root, *parts)

    def local_path(self, *parts):
        return os.path.join(self.local_root, *parts)

    @staticmethod
    def write_file(path, data):
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'wb') as file:
            file.write(data)

    @staticmethod
    def read_file(path):
        with open(path, 'rb') as file:
            return file.read()

    def read_commands(self):
        return [c for c in self.device.executed if c.startswith('_zap_read(')]

    def write_commands(self):
        return [c for c in self.device.executed if c.startswith('_zap_write(')]


class TestCat(TransferTestCase):
    def test_cat_small_file(self):
        self.write_file(self.device_path('a.txt'), b'hello')
        sink = io.BytesIO()
        self.assertEqual(self.transfer.cat('/a.txt', sink), 5)
        self.assertEqual(sink.getvalue(), b'hello')
        self.assertEqual(len(self.read_commands()), 1)

    def test_cat_empty_file(self):
        self.write_file(self.device_path('empty'), b'')
        sink = io.BytesIO()
        self.assertEqual(self.transfer.cat('/empty', sink), 0)
        self.assertEqual(len(self.read_commands()), 1)

    def test_cat_exact_chunk_needs_extra_read(self):
        self.write_file(self.device_path('f'), b'x' * CHUNK)
        sink = io.BytesIO()
        self.transfer.cat('/f', sink)
        self.assertEqual(len(self.read_commands()), 2)

    def test_cat_offsets_increase(self):
        self.write_file(self.device_path('f'), b'x' * (CHUNK * 2 + 1))
        self.transfer.cat('/f', io.BytesIO())
        self.assertEqual(self.read_commands(), [
            f"_zap_read('/f', {offset}, {CHUNK})"
            for offset in (0, CHUNK, CHUNK * 2)])

    def test_cat_missing(self):
        with self.assertRaises(FileNotFound):
            self.transfer.cat('/missing', io.BytesIO())


class TestPutGet(TransferTestCase):
    def test_round_trip_sizes(self):
        data = bytes(range(256)) * 8
        for size in (0, 1, CHUNK, CHUNK + 1, CHUNK * 3 + 17):
            with self.subTest(size=size):
                src = self.local_path(f'src_{size}.bin')
                dst = self.local_path(f'dst_{size}.bin')
                self.write_file(src, data[:size])
                self.assertEqual(self.transfer.put(f'/f_{size}.bin', src), size)
                self.assertEqual(
                    self.read_file(self.device_path(f'f_{size}.bin')), data[:size])
                self.assertEqual(self.transfer.get(dst, f'/f_{size}.bin'), size)
                self.assertEqual(self.read_file(dst), data[:size])

    def test_put_truncates_remote(self):
        self.write_file(self.device_path('f'), b'old content which is long')
        src = self.local_path('src')
        self.write_file(src, b'new')
        self.transfer.put('/f', src)
        self.assertEqual(self.read_file(self.device_path('f')), b'new')

    def test_put_empty_file_creates_remote(self):
        src = self.local_path('empty')
        self.write_file(src, b'')
        self.transfer.put('/empty', src)
        self.assertEqual(self.read_file(self.device_path('empty')), b'')
        self.assertEqual(len(self.write_commands()), 1)

    def test_put_exact_chunk_single_write(self):
        src = self.local_path('src')
        self.write_file(src, b'y' * CHUNK)
        self.transfer.put('/f', src)
        self.assertEqual(len(self.write_commands()), 1)

    def test_get_truncates_local(self):
        self.write_file(self.device_path('f'), b'new')
        dst = self.local_path('dst')
        self.write_file(dst, b'old content which is long')
        self.transfer.get(dst, '/f')
        self.assertEqual(self.read_file(dst), b'new')

    def test_get_missing_raises(self):
        with self.assertRaises(FileNotFound):
            self.transfer.get(self.local_path('dst'), '/missing')

    def test_get_timeout_aborts(self):
        self.write_file(self.device_path('f'), b'data')
        self.device.hang = True
        self.repl._timeout = 0.05
        with self.assertRaises(ProtocolTimeout):
            self.transfer.get(self.local_path('dst'), '/f')


class TestTrees(TransferTestCase):
    def make_remote_tree(self):
        self.write_file(self.device_path('a.txt'), b'a')
        self.write_file(self.device_path('b', 'c.txt'), b'c')
        self.write_file(self.device_path('b', 'd', 'e.txt'), b'e')
        os.mkdir(self.device_path('b', 'empty'))

    def test_remote_tree_order(self):
        self.make_remote_tree()
        self.assertEqual(self.transfer.remote_tree('/'), [
            ('a.txt', False),
            ('b', True),
            ('b/c.txt', False),
            ('b/d', True),
            ('b/d/e.txt', False),
            ('b/empty', True),
        ])

    def test_local_tree_excludes(self):
        self.write_file(self.local_path('main.py'), b'')
        self.write_file(self.local_path('__pycache__', 'main.pyc'), b'')
        self.write_file(self.local_path('.git', 'HEAD'), b'')
        self.write_file(self.local_path('lib', 'x.py'), b'')
        self.write_file(self.local_path('lib', 'x.log'), b'')
        transfer = Transfer(self.fs, exclude=['*.log'])
        self.assertEqual(transfer.local_tree(self.local_root), [
            ('lib', True), ('lib/x.py', False), ('main.py', False)])

    def test_download(self):
        self.make_remote_tree()
        self.transfer.download('/', self.local_root)
        self.assertEqual(self.read_file(self.local_path('a.txt')), b'a')
        self.assertEqual(self.read_file(self.local_path('b', 'c.txt')), b'c')
        self.assertEqual(self.read_file(self.local_path('b', 'd', 'e.txt')), b'e')
        self.assertTrue(os.path.isdir(self.local_path('b', 'empty')))

    def test_download_creates_dir_before_file(self):
        self.make_remote_tree()
        events = []
        transfer = Transfer(self.fs)
        transfer.get = lambda dst, src: events.append(
            (src, os.path.isdir(os.path.dirname(dst))))
        transfer.download('/', self.local_root)
        self.assertEqual(events, [
            ('/a.txt', True), ('/b/c.txt', True), ('/b/d/e.txt', True)])

    def test_download_is_deterministic(self):
        self.make_remote_tree()
        self.transfer.download('/', self.local_path('first'))
        first = list(self.device.executed)
        del self.device.executed[:]
        self.transfer.download('/', self.local_path('second'))
        self.assertEqual(
            [c for c in first if c.startswith('_zap_')],
            [c for c in self.device.executed if c.startswith('_zap_')])

    def test_download_relative_to_cwd(self):
        self.make_remote_tree()
        self.fs.chdir('/b')
        self.transfer.download(local_root=self.local_root)
        self.assertEqual(self.read_file(self.local_path('c.txt')), b'c')
        self.assertFalse(os.path.exists(self.local_path('a.txt')))

    def test_download_failure_has_context(self):
        self.make_remote_tree()
        fs = Mock(wraps=self.fs)
        fs.read_chunk.side_effect = FileNotFound('/b/c.txt', 'OSError: 2')
        transfer = Transfer(fs)
        with self.assertRaises(TransferError) as ctx:
            transfer.download('/', self.local_root)
        self.assertEqual(ctx.exception.src, '/a.txt')
        self.assertIsInstance(ctx.exception.cause, FileNotFound)
        self.assertIsInstance(ctx.exception.__cause__, FileNotFound)
        self.assertFalse(os.path.exists(self.local_path('b', 'c.txt')))

    def test_upload(self):
        self.write_file(self.local_path('main.py'), b'main')
        self.write_file(self.local_path('lib', 'x.py'), b'x' * (CHUNK + 3))
        os.mkdir(self.local_path('lib', 'empty'))
        self.transfer.upload(self.local_root, '/')
        self.assertEqual(self.read_file(self.device_path('main.py')), b'main')
        self.assertEqual(
            self.read_file(self.device_path('lib', 'x.py')), b'x' * (CHUNK + 3))
        self.assertTrue(os.path.isdir(self.device_path('lib', 'empty')))

    def test_upload_twice(self):
        self.write_file(self.local_path('lib', 'x.py'), b'1')
        self.transfer.upload(self.local_root, '/')
        self.write_file(self.local_path('lib', 'x.py'), b'2')
        self.transfer.upload(self.local_root, '/')
        self.assertEqual(self.read_file(self.device_path('lib', 'x.py')), b'2')

    def test_upload_file_in_place_of_dir(self):
        self.write_file(self.device_path('lib'), b'file')
        self.write_file(self.local_path('lib', 'x.py'), b'x')
        self.write_file(self.local_path('z.py'), b'z')
        with self.assertRaises(TransferError) as ctx:
            self.transfer.upload(self.local_root, '/')
        self.assertEqual(ctx.exception.dst, '/lib')
        self.assertIsInstance(ctx.exception.cause, NotADirectory)
        self.assertFalse(os.path.exists(self.device_path('z.py')))

    def test_upload_then_download(self):
        self.write_file(self.local_path('src', 'a.txt'), b'\x00\x04\x03binary')
        self.write_file(self.local_path('src', 'b', 'c.txt'), b'c' * 1000)
        self.fs.mkdir('/dst')
        self.transfer.upload(self.local_path('src'), '/dst')
        self.transfer.download('/dst', self.local_path('back'))
        self.assertEqual(
            self.read_file(self.local_path('back', 'a.txt')), b'\x00\x04\x03binary')
        self.assertEqual(
            self.read_file(self.local_path('back', 'b', 'c.txt')), b'c' * 1000)


if __name__ == "__main__":
    unittest.main()
