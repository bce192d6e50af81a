"""File descriptors for Linux TUN and TAP devices."""

from __future__ import annotations

import fcntl
import os
import struct

from minnow.errors import UnixError
from minnow.file_descriptor import FileDescriptor

CLONE_DEVICE = "/dev/net/tun"

TUNSETIFF = 0x400454CA
IFF_TUN = 0x0001
IFF_TAP = 0x0002
IFF_NO_PI = 0x1000
IFNAMSIZ = 16

_IFREQ_FORMAT = f"{IFNAMSIZ}sh22x"


def _ifreq(devname: str, is_tun: bool) -> bytes:
    """A ``struct ifreq`` naming the device, with no packet-info header."""
    flags = (IFF_TUN if is_tun else IFF_TAP) | IFF_NO_PI
    name = devname.encode()[: IFNAMSIZ - 1]
    return struct.pack(_IFREQ_FORMAT, name, flags)


class TunTapFD(FileDescriptor):
    """An open, existing persistent TUN (IP datagrams) or TAP (Ethernet frames) device.

    The device must already have been created, e.g. with
    ``ip tuntap add mode tun user <user> name <devname>``.
    """

    def __init__(self, devname: str, is_tun: bool, clone_device: str = CLONE_DEVICE) -> None:
        try:
            fd = os.open(clone_device, os.O_RDWR | os.O_CLOEXEC)
        except OSError as exc:
            raise UnixError("open", exc.errno or 0) from exc
        super().__init__(fd)
        try:
            fcntl.ioctl(fd, TUNSETIFF, _ifreq(devname, is_tun))
        except OSError as exc:
            self.close()
            raise UnixError("ioctl", exc.errno or 0) from exc


class TunFD(TunTapFD):
    """An open TUN device."""

    def __init__(self, devname: str, clone_device: str = CLONE_DEVICE) -> None:
        super().__init__(devname, True, clone_device)


class TapFD(TunTapFD):
    """An open TAP device."""

    def __init__(self, devname: str, clone_device: str = CLONE_DEVICE) -> None:
        super().__init__(devname, False, clone_device)