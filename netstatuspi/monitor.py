"""WAN/LAN connectivity monitor with a single background check loop."""

import errno
import logging
import socket
import time
from collections.abc import Sequence
from threading import Condition, Event, Lock, Thread

from .config import (
    DEFAULT_WAN_HOST,
    LOOPBACK_INTERFACE,
    MonitorConfig,
    NetworkConfig,
    WanServer,
    build_monitor_config,
    clamp_check_interval,
    clamp_port,
    clamp_timeout_ms,
)
from .interfaces import (
    ROUTE_TABLE_PATH,
    InterfaceDetectionError,
    detect_default_interface,
    get_interface_flags,
    is_link_up,
)
from .models import MonitorStatus, ProbeResult, StatusSnapshot

logger = logging.getLogger(__name__)

# Connect attempts per WAN server before moving on to the next server.
WAN_ATTEMPTS_PER_SERVER = 3

# Delay after the first failed attempt; doubles each retry (100, 200, 400 ms).
WAN_BACKOFF_BASE_SECONDS = 0.1

# How long stop() waits for the loop thread to observe the stop flag.
SHUTDOWN_GRACE_SECONDS = 0.5


class MonitorError(Exception):
    """Raised when a Monitor cannot be constructed."""

    pass


def _error_code(exc: BaseException) -> int:
    """Reduce an exception to a positive errno value."""
    code = getattr(exc, "errno", None)
    if isinstance(code, int) and code > 0:
        return code
    if isinstance(exc, TimeoutError):
        return errno.ETIMEDOUT
    return errno.EIO


def _is_valid_server(server: WanServer) -> bool:
    """Servers must be IPv4 literals so the probe never depends on DNS."""
    if not 0 < server.port <= 65535:
        return False
    try:
        socket.inet_pton(socket.AF_INET, server.host)
    except (OSError, TypeError):
        return False
    return True


def check_wan(servers: Sequence[WanServer], timeout_ms: int) -> ProbeResult:
    """Check internet reachability with plain TCP connects.

    Servers are tried in order. Each gets up to WAN_ATTEMPTS_PER_SERVER
    connect attempts, sleeping 100ms, 200ms and 400ms after the successive
    failures. The first accepted connection makes WAN UP and clears the
    error. When every server fails, the error is the most recent failure.

    Args:
        servers: Ordered WAN endpoints (IPv4 literal host, port).
        timeout_ms: Timeout for each connect attempt in milliseconds.

    Returns:
        ProbeResult with the WAN state and errno (0 on success).
    """
    timeout = timeout_ms / 1000
    last_error = 0

    for server in servers:
        if not _is_valid_server(server):
            logger.debug("Skipping WAN server %s: not an IPv4 address and port", server)
            last_error = errno.EINVAL
            continue

        for attempt in range(WAN_ATTEMPTS_PER_SERVER):
            try:
                with socket.create_connection((server.host, server.port), timeout=timeout):
                    pass
            except OSError as e:
                last_error = _error_code(e)
                delay = WAN_BACKOFF_BASE_SECONDS * (2**attempt)
                logger.debug(
                    "WAN server %s attempt %d/%d failed: %s",
                    server,
                    attempt + 1,
                    WAN_ATTEMPTS_PER_SERVER,
                    e,
                )
                time.sleep(delay)
            else:
                return ProbeResult(is_up=True, error=0)

    return ProbeResult(is_up=False, error=last_error)


def check_lan(interface: str) -> ProbeResult:
    """Check that an interface is administratively up and has link.

    A failed flag query is a hard failure carrying its errno. When the
    flags are readable but not both set, the error is left untouched so
    whatever was recorded earlier survives.
    """
    try:
        flags = get_interface_flags(interface)
    except OSError as e:
        logger.debug("Cannot query flags for %s: %s", interface, e)
        return ProbeResult(is_up=False, error=_error_code(e))

    if is_link_up(flags):
        return ProbeResult(is_up=True, error=0)
    return ProbeResult(is_up=False, error=None)


def _resolve_lan_interface(route_table_path: str) -> str:
    """Pick the default-route interface, falling back to loopback."""
    try:
        detected = detect_default_interface(route_table_path)
    except InterfaceDetectionError as e:
        logger.warning("%s; falling back to %s", e, LOOPBACK_INTERFACE)
        return LOOPBACK_INTERFACE

    if detected is None:
        logger.info("No default route found, monitoring %s", LOOPBACK_INTERFACE)
        return LOOPBACK_INTERFACE
    return detected


class Monitor:
    """Background monitor for WAN reachability and LAN link state.

    Construction resolves and validates the LAN interface, then starts one
    daemon thread that runs a WAN check followed by a LAN check every
    ``check_interval_sec`` seconds. Results are published under a single
    lock together with the check timestamp, so readers always see values
    from one completed cycle. Accessors and setters never perform network
    I/O; setter changes apply from the next cycle.

    Example:
        monitor = Monitor(NetworkConfig(lan_interface="eth0"))
        if monitor.wan_up:
            ...
        monitor.stop()
    """

    def __init__(
        self,
        config: NetworkConfig | None = None,
        *,
        route_table_path: str = ROUTE_TABLE_PATH,
        grace_period: float = SHUTDOWN_GRACE_SECONDS,
    ) -> None:
        """Initialize the monitor and start its check loop.

        Args:
            config: Optional construction options; None uses all defaults.
            route_table_path: Routing table used for interface auto-detection.
            grace_period: Maximum seconds stop() waits for the loop to exit.

        Raises:
            MonitorError: If the LAN interface cannot be queried or the
                loop thread cannot be started.
        """
        self._config: MonitorConfig = build_monitor_config(config)
        if not self._config.lan_interface:
            self._config.lan_interface = _resolve_lan_interface(route_table_path)

        try:
            get_interface_flags(self._config.lan_interface)
        except OSError as e:
            raise MonitorError(f"LAN interface '{self._config.lan_interface}' cannot be queried: {e}") from e

        self._status = MonitorStatus()
        self._lock = Lock()
        self._published = Condition(self._lock)
        self._stop_event = Event()
        self._grace_period = grace_period

        self._thread = Thread(target=self._run_loop, daemon=True, name="netstatus-loop")
        try:
            self._thread.start()
        except RuntimeError as e:
            raise MonitorError(f"Failed to start monitor thread: {e}") from e

        logger.info(
            "Network monitor started (LAN %s, %d WAN servers, every %ds)",
            self._config.lan_interface,
            len(self._config.wan_servers),
            self._config.check_interval_sec,
        )

    # -- lifecycle --------------------------------------------------------

    def stop(self) -> None:
        """Stop the check loop.

        Waits at most the grace period for the loop to exit. A cycle already
        in progress is not interrupted, but its result is discarded, so the
        published status never changes after this call returns. Calling stop
        again is a no-op.
        """
        with self._published:
            if self._stop_event.is_set():
                logger.debug("Network monitor already stopped")
                return
            self._stop_event.set()
            self._published.notify_all()

        logger.info("Stopping network monitor...")
        self._thread.join(timeout=self._grace_period)

        if self._thread.is_alive():
            logger.warning(
                "Monitor loop did not stop within %.1fs; its in-flight check result will be discarded",
                self._grace_period,
            )
        else:
            logger.info("Network monitor stopped")

    def is_running(self) -> bool:
        """Check if the monitor loop is currently running."""
        return not self._stop_event.is_set() and self._thread.is_alive()

    def wait_for_check(self, timeout: float | None = None) -> bool:
        """Block until one more cycle has been published.

        Returns:
            True if a new cycle completed, False on timeout or shutdown.
        """
        with self._published:
            target = self._status.cycles + 1
            self._published.wait_for(
                lambda: self._status.cycles >= target or self._stop_event.is_set(),
                timeout=timeout,
            )
            return self._status.cycles >= target

    # -- accessors --------------------------------------------------------

    @property
    def wan_up(self) -> bool:
        with self._lock:
            return self._status.wan_up

    @property
    def lan_up(self) -> bool:
        with self._lock:
            return self._status.lan_up

    @property
    def last_check_time(self) -> float:
        """Epoch seconds of the last completed cycle, 0.0 before the first."""
        with self._lock:
            return self._status.last_check_time

    @property
    def last_error(self) -> int:
        """Most recent errno from any probe, 0 when the last probe cleared it."""
        with self._lock:
            return self._status.last_error

    @property
    def config(self) -> MonitorConfig:
        """Copy of the live configuration."""
        with self._lock:
            return self._config.copy()

    def snapshot(self) -> StatusSnapshot:
        """Copy status and configuration in one critical section."""
        with self._lock:
            return StatusSnapshot(
                wan_up=self._status.wan_up,
                lan_up=self._status.lan_up,
                last_check_time=self._status.last_check_time,
                last_error=self._status.last_error,
                timeout_ms=self._config.timeout_ms,
                check_interval_sec=self._config.check_interval_sec,
                proxy_url=self._config.proxy_url,
                wan_host=self._config.primary.host,
                wan_port=self._config.primary.port,
                lan_interface=self._config.lan_interface,
            )

    def to_string(self) -> str:
        """Human-readable summary of the current snapshot."""
        return str(self.snapshot())

    # -- setters ----------------------------------------------------------

    def set_timeout_ms(self, ms: int) -> None:
        """Set the per-attempt connect timeout (non-positive -> 1000ms)."""
        value = clamp_timeout_ms(ms)
        with self._lock:
            self._config.timeout_ms = value

    def set_check_interval_sec(self, sec: int) -> None:
        """Set the cycle interval (non-positive -> 5s)."""
        value = clamp_check_interval(sec)
        with self._lock:
            self._config.check_interval_sec = value

    def set_proxy(self, proxy_url: str | None) -> None:
        """Store a proxy URL. Not used by any probe; None clears it."""
        with self._lock:
            self._config.proxy_url = proxy_url if isinstance(proxy_url, str) else ""

    def set_wan_host(self, host: str | None) -> None:
        """Replace the primary WAN server host (None/empty -> 8.8.8.8)."""
        with self._lock:
            self._config.replace_primary(host=host if isinstance(host, str) and host else DEFAULT_WAN_HOST)

    def set_wan_port(self, port: int) -> None:
        """Replace the primary WAN server port (non-positive -> 53)."""
        value = clamp_port(port)
        with self._lock:
            self._config.replace_primary(port=value)

    def set_lan_interface(self, interface: str | None) -> None:
        """Switch the monitored interface (None/empty -> loopback).

        The name is not validated; an unknown interface simply reads DOWN
        with an error from the next cycle on.
        """
        with self._lock:
            self._config.lan_interface = (
                interface if isinstance(interface, str) and interface else LOOPBACK_INTERFACE
            )

    # -- loop -------------------------------------------------------------

    def _run_loop(self) -> None:
        """Main check loop - runs in background thread."""
        logger.debug("Monitor loop started")

        while True:
            with self._lock:
                if self._stop_event.is_set():
                    break
                servers = list(self._config.wan_servers)
                timeout_ms = self._config.timeout_ms
                interface = self._config.lan_interface
                interval = self._config.check_interval_sec

            self._run_cycle(servers, timeout_ms, interface)

            # Use wait() so stop() does not have to sit out the interval
            self._stop_event.wait(timeout=interval)

        logger.debug("Monitor loop exited")

    def _run_cycle(self, servers: list[WanServer], timeout_ms: int, interface: str) -> None:
        """Run WAN then LAN checks and publish the outcome.

        Each check is guarded on its own, so a crash in one reads that side
        DOWN with an error and leaves the other side's result intact.
        """
        try:
            wan = check_wan(servers, timeout_ms)
        except Exception as e:
            logger.error("WAN check failed: %s", e)
            wan = ProbeResult(is_up=False, error=_error_code(e))

        try:
            lan = check_lan(interface)
        except Exception as e:
            logger.error("LAN check on %s failed: %s", interface, e)
            lan = ProbeResult(is_up=False, error=_error_code(e))

        logger.debug(
            "Cycle result: WAN %s (error %s), LAN %s on %s (error %s)",
            "UP" if wan.is_up else "DOWN",
            wan.error,
            "UP" if lan.is_up else "DOWN",
            interface,
            lan.error,
        )
        self._publish(wan, lan, interface)

    def _publish(self, wan: ProbeResult, lan: ProbeResult, interface: str) -> None:
        """Write one cycle's results atomically, unless stop() already ran."""
        with self._published:
            if self._stop_event.is_set():
                logger.debug("Discarding check result completed after stop")
                return

            status = self._status
            first_cycle = status.cycles == 0
            wan_changed = status.wan_up != wan.is_up
            lan_changed = status.lan_up != lan.is_up

            status.wan_up = wan.is_up
            status.lan_up = lan.is_up
            # LAN runs second, so its error wins whenever it reports one
            if wan.error is not None:
                status.last_error = wan.error
            if lan.error is not None:
                status.last_error = lan.error
            status.last_check_time = time.time()
            status.cycles += 1
            last_error = status.last_error

            self._published.notify_all()

        if first_cycle or wan_changed:
            logger.info("WAN is %s (last error %d)", "UP" if wan.is_up else "DOWN", last_error)
        if first_cycle or lan_changed:
            logger.info("LAN %s is %s", interface, "UP" if lan.is_up else "DOWN")
