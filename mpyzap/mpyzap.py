"""MicroPython zap"""

import argparse as _argparse
import os as _os
import sys as _sys

import mpyzap as _mpyzap
import mpyzap.terminal as _terminal
import mpyzap.utils as _utils
import mpyzap.__about__ as _about


class ParamsError(_mpyzap.MpyError):
    """Wrong command parameters"""


class MpyZap():
    # command: (method, minimal arguments, maximal arguments)
    _COMMANDS = {
        'cat': ('cmd_cat', 1, 1),
        'cd': ('cmd_cd', 1, 1),
        'download': ('cmd_download', 0, 0),
        'get': ('cmd_get', 1, 2),
        'ls': ('cmd_ls', 0, 1),
        'mkdir': ('cmd_mkdir', 1, 1),
        'put': ('cmd_put', 1, 2),
        'pwd': ('cmd_pwd', 0, 0),
        'reboot': ('cmd_reboot', 0, 0),
        'repl': ('cmd_repl', 0, 0),
        'rm': ('cmd_rm', 1, 1),
        'rmdir': ('cmd_rmdir', 1, 1),
        'upload': ('cmd_upload', 0, 0),
    }
    # commands which talk to device console directly, without raw REPL
    _NO_RAW = ('repl', )

    def __init__(self, session, log=None, stdout=None):
        self._session = session
        self._log = log
        self._stdout = stdout if stdout is not None else _sys.stdout

    def _print(self, msg):
        print(msg, file=self._stdout)

    def cmd_cat(self, path):
        sink = getattr(self._stdout, 'buffer', self._stdout)
        self._session.cat(path, sink)
        sink.flush()

    def cmd_cd(self, path):
        self._session.cd(path)

    def cmd_download(self):
        self._session.download()

    def cmd_get(self, dst, src=None):
        self._session.get(dst, src or dst)

    def cmd_ls(self, path=''):
        self._print('  '.join(self._session.ls(path)))

    def cmd_mkdir(self, path):
        self._session.mkdir(path)

    def cmd_put(self, dst, src=None):
        src = src or dst
        if not _os.path.isfile(src):
            raise ParamsError(f'No file to upload: {src}')
        self._session.put(dst, src)

    def cmd_pwd(self):
        self._print(self._session.cwd())

    def cmd_reboot(self):
        self._session.soft_reboot()

    def cmd_rm(self, path):
        self._session.rm(path)

    def cmd_rmdir(self, path):
        self._session.rmdir(path)

    def cmd_upload(self):
        self._session.upload()

    def cmd_repl(self):
        print("Entering REPL mode, to exit press CTRL + ]", file=_sys.stderr)
        passthrough = _terminal.Passthrough(
            self._session.conn, _sys.stdin.buffer.raw, _sys.stdout.buffer,
            log=self._log, exit_char=_terminal.CTRL_RIGHT_BRACKET)
        with _terminal.raw_console():
            passthrough.run()
        print('', file=_sys.stderr)

    def process_command(self, command, args):
        if command not in self._COMMANDS:
            raise ParamsError(f"unknown command: '{command}'")
        method, min_args, max_args = self._COMMANDS[command]
        if not min_args <= len(args) <= max_args:
            raise ParamsError(f"wrong number of arguments for '{command}'")
        if command in self._NO_RAW:
            getattr(self, method)(*args)
            return
        with self._session.raw():
            getattr(self, method)(*args)


_VERSION_STR = "%s %s" % (_about.APP_NAME, _about.VERSION)
_COMMANDS_HELP_STR = """
List of available commands:
  cat {file}                    print file
  cd {path}                     change directory
  download                      copy all files from device to local directory
  get {dst} [{src}]             copy a file from the device
  ls [{path}]                   list files
  mkdir {dir}                   make directory
  put {dst} [{src}]             copy a file to the device
  pwd                           print working directory
  reboot                        perform a soft reboot
  repl                          open the MicroPython REPL
  rm {file}                     delete file
  rmdir {dir}                   remove empty directory
  upload                        copy all files from local directory to device
  version                       print version
"""


def _find_device(log):
    ports = _utils.detect_serial_ports()
    if not ports:
        raise ParamsError(
            'No serial device found, use --device or PYBOARD_DEVICE')
    if len(ports) > 1:
        log.warning("Multiple devices found, using %s", ports[0])
    return ports[0]


def main(argv=None):
    """Main"""
    parser = _argparse.ArgumentParser(
        formatter_class=_argparse.RawTextHelpFormatter,
        epilog=_COMMANDS_HELP_STR)
    parser.add_argument(
        "-V", "--version", action='version', version=_VERSION_STR)
    parser.add_argument(
        '-d', '--device', default=_os.environ.get('PYBOARD_DEVICE'),
        help="serial device name of MicroPython board "
        "(env: PYBOARD_DEVICE)")
    parser.add_argument(
        '-b', '--baudrate', type=int,
        default=_os.environ.get('PYBOARD_BAUDRATE', 115200),
        help="baudrate of serial device (env: PYBOARD_BAUDRATE)")
    parser.add_argument(
        '-t', '--timeout', type=float, default=5,
        help="timeout for device response in seconds")
    parser.add_argument(
        '-e', '--exclude', type=str, action='append',
        help='exclude pattern for upload, by default are excluded: '
        '__pycache__, .git, .svn')
    parser.add_argument(
        '--debug', default=0, action='count', help='set debug level')
    parser.add_argument(
        '-v', '--verbose', default=0, action='count', help='verbose output')
    parser.add_argument('command', help='command')
    parser.add_argument('args', nargs='*', help='command arguments')
    args = parser.parse_args(argv)

    if args.command == 'version':
        print(_about.VERSION)
        return 0

    log = _mpyzap.SimpleColorLogger(args.debug + 1, args.verbose)
    try:
        device = args.device or _find_device(log)
        conn = _mpyzap.ConnSerial(
            port=device, baudrate=args.baudrate, log=log)
    except (_mpyzap.MpyError, _mpyzap.ConnError) as err:
        log.error(err)
        return 1
    session = _mpyzap.Session(
        conn, log=log, timeout=args.timeout, exclude=args.exclude)
    try:
        MpyZap(session, log=log).process_command(args.command, args.args)
    except (_mpyzap.MpyError, _mpyzap.ConnError, OSError) as err:
        log.error(err)
        return 1
    finally:
        session.close()
    return 0


if __name__ == '__main__':
    _sys.exit(main())
