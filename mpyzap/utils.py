"""Utility functions for mpyzap"""

import glob as _glob
import sys as _sys

from serial.tools.list_ports import comports as _comports


def join_remote_path(base, name):
    """Join remote path components (handles empty string and '/' correctly)"""
    if not name:
        return base
    if base == '/':
        return '/' + name
    if base:
        return base.rstrip('/') + '/' + name
    return name


def format_size(size):
    """Format size in bytes to human readable format (like ls -h)"""
    if size < 1024:
        return f"{int(size)}B"
    for unit in ('K', 'M', 'G', 'T'):
        size /= 1024
        if size < 10:
            return f"{size:.2f}{unit}"
        if size < 100:
            return f"{size:.1f}{unit}"
        if size < 1024 or unit == 'T':
            return f"{size:.0f}{unit}"
    return f"{size:.0f}T"


def detect_serial_ports() -> list:
    """Detect available serial ports for MicroPython devices

    Returns:
        list of port paths sorted by likelihood of being MicroPython device
    """
    patterns = []
    if _sys.platform == "darwin":
        # cu.* does not wait for DCD signal
        patterns = [
            "/dev/cu.usbmodem*",
            "/dev/cu.usbserial*",
        ]
    elif _sys.platform == "linux":
        patterns = [
            "/dev/ttyACM*",
            "/dev/ttyUSB*",
        ]
    else:
        return sorted(
            port.device for port in _comports() if port.vid is not None)

    ports = []
    for pattern in patterns:
        for port in sorted(_glob.glob(pattern)):
            if port not in ports:
                ports.append(port)
    return ports
