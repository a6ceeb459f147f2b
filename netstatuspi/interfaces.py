"""Network interface discovery and link-flag queries.

Both operations are unprivileged: the default-route interface is read from
the kernel's textual IPv4 routing table and link state comes from the
SIOCGIFFLAGS ioctl on a throwaway datagram socket. Linux only.
"""

import errno
import fcntl
import logging
import os
import socket
import struct
from collections.abc import Iterable

logger = logging.getLogger(__name__)

ROUTE_TABLE_PATH = "/proc/net/route"

# Route flags from <linux/route.h>
RTF_UP = 0x0001
RTF_GATEWAY = 0x0002

# Interface flags from <net/if.h>
IFF_UP = 0x1
IFF_RUNNING = 0x40

SIOCGIFFLAGS = 0x8913
IFNAMSIZ = 16


class InterfaceDetectionError(Exception):
    """Raised when the routing table cannot be read."""

    def __init__(self, message: str, error_code: int) -> None:
        super().__init__(message)
        self.errno = error_code


def parse_route_table(lines: Iterable[str]) -> str | None:
    """Return the interface carrying the default route, if any.

    Each line is ``Iface Destination Gateway Flags ...`` with hexadecimal
    address and flag columns. A route qualifies when the destination is
    0.0.0.0, both RTF_GATEWAY and RTF_UP are set and the gateway is non-zero.
    The first qualifying line wins. Lines that do not parse (such as the
    header) are skipped.
    """
    for line in lines:
        fields = line.split()
        if len(fields) < 4:
            continue
        try:
            destination = int(fields[1], 16)
            gateway = int(fields[2], 16)
            flags = int(fields[3], 16)
        except ValueError:
            continue

        if destination == 0 and flags & RTF_GATEWAY and flags & RTF_UP and gateway != 0:
            return fields[0]
    return None


def detect_default_interface(route_table_path: str = ROUTE_TABLE_PATH) -> str | None:
    """Find the outbound interface by reading the kernel routing table.

    Returns:
        Interface name, or None when no default route exists.

    Raises:
        InterfaceDetectionError: If the routing table cannot be read.
    """
    try:
        with open(route_table_path, encoding="ascii", errors="replace") as f:
            iface = parse_route_table(f)
    except OSError as e:
        raise InterfaceDetectionError(
            f"Cannot read routing table {route_table_path}: {e}",
            e.errno or errno.EIO,
        ) from e

    if iface is None:
        logger.debug("No default route found in %s", route_table_path)
    else:
        logger.debug("Default route uses interface %s", iface)
    return iface


def get_interface_flags(name: str) -> int:
    """Query the kernel flag bitset for an interface.

    The name is encoded like any other OS path, so undecodable bytes from
    the environment round-trip to the kernel unchanged.

    Raises:
        OSError: If the query socket cannot be opened or the interface does
            not exist (typically ENODEV). Names that cannot be encoded at
            all are reported as ENODEV too.
    """
    try:
        encoded = os.fsencode(name)
    except UnicodeError as e:
        raise OSError(errno.ENODEV, f"Invalid interface name {name!r}: {e}") from e

    request = struct.pack("256s", encoded[: IFNAMSIZ - 1])
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        response = fcntl.ioctl(sock.fileno(), SIOCGIFFLAGS, request)
    return struct.unpack_from("H", response, IFNAMSIZ)[0]


def is_link_up(flags: int) -> bool:
    """True only when the interface is administratively up and has link."""
    return bool(flags & IFF_UP) and bool(flags & IFF_RUNNING)
