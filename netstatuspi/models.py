"""Data models for connectivity check results."""

from dataclasses import dataclass


@dataclass
class MonitorStatus:
    """Latest published connectivity status.

    Attributes:
        wan_up: True if at least one WAN server accepted a connection.
        lan_up: True if the LAN interface is administratively up with link.
        last_check_time: Epoch seconds of the last completed cycle, 0.0 before the first.
        last_error: Most recent errno from any probe, 0 if none.
        cycles: Number of cycles published so far.
    """

    wan_up: bool = False
    lan_up: bool = False
    last_check_time: float = 0.0
    last_error: int = 0
    cycles: int = 0


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single WAN or LAN probe.

    Attributes:
        is_up: Whether the probe succeeded.
        error: errno to record as the last error, 0 to clear it, or None to
            leave the previously recorded error in place.
    """

    is_up: bool
    error: int | None


@dataclass(frozen=True)
class StatusSnapshot:
    """Consistent copy of a monitor's status and displayed configuration."""

    wan_up: bool
    lan_up: bool
    last_check_time: float
    last_error: int
    timeout_ms: int
    check_interval_sec: int
    proxy_url: str
    wan_host: str
    wan_port: int
    lan_interface: str

    def __str__(self) -> str:
        return (
            f"NetworkMonitor: WAN={'UP' if self.wan_up else 'DOWN'}, "
            f"LAN={'UP' if self.lan_up else 'DOWN'}, "
            f"LastCheck={int(self.last_check_time)}, LastError={self.last_error}, "
            f"Timeout={self.timeout_ms}ms, Interval={self.check_interval_sec}s, "
            f"Proxy={self.proxy_url}, WANHost={self.wan_host}:{self.wan_port}, "
            f"LANIface={self.lan_interface}"
        )
