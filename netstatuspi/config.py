"""Configuration loader with type-safe dataclasses."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


# Per-attempt TCP connect timeout used when none (or an invalid one) is given.
DEFAULT_TIMEOUT_MS = 1000

# Seconds between full WAN+LAN check cycles.
DEFAULT_CHECK_INTERVAL_SEC = 5

DEFAULT_WAN_HOST = "8.8.8.8"
DEFAULT_WAN_PORT = 53

# Interface used when no default route is found and none is configured.
LOOPBACK_INTERFACE = "lo"

# More servers means more redundancy but a longer worst-case WAN check.
MAX_WAN_SERVERS = 4


@dataclass(frozen=True)
class WanServer:
    """A TCP endpoint probed to decide WAN reachability."""

    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


# Public DNS resolvers: Google, Cloudflare, Quad9, OpenDNS.
DEFAULT_WAN_SERVERS: tuple[WanServer, ...] = (
    WanServer(DEFAULT_WAN_HOST, DEFAULT_WAN_PORT),
    WanServer("1.1.1.1", 53),
    WanServer("9.9.9.9", 53),
    WanServer("208.67.222.222", 53),
)


def _is_positive_int(value: object) -> bool:
    """bool is an int subclass but never a valid count."""
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def clamp_timeout_ms(value: int | None) -> int:
    """Return value if it is a positive integer timeout, otherwise the default."""
    return value if _is_positive_int(value) else DEFAULT_TIMEOUT_MS


def clamp_check_interval(value: int | None) -> int:
    """Return value if it is a positive integer interval, otherwise the default."""
    return value if _is_positive_int(value) else DEFAULT_CHECK_INTERVAL_SEC


def clamp_port(value: int | None) -> int:
    """Return value if it is a positive integer port, otherwise the default WAN port."""
    return value if _is_positive_int(value) else DEFAULT_WAN_PORT


@dataclass(frozen=True)
class NetworkConfig:
    """Construction-time options for a Monitor.

    Every field is optional; ``None`` means "use the default". Out-of-range
    numbers are not rejected here, the monitor replaces them with defaults.

    - wan_test_host/wan_test_port: override the primary WAN server. Both must
      be given (non-empty host, positive port) for the override to apply.
    - lan_interface: interface to inspect. When omitted the default-route
      interface is auto-detected, falling back to loopback.
    - proxy_url: stored and reported, not used by any probe.
    """

    timeout_ms: int | None = None
    check_interval_sec: int | None = None
    proxy_url: str | None = None
    wan_test_host: str | None = None
    wan_test_port: int | None = None
    lan_interface: str | None = None


@dataclass
class MonitorConfig:
    """Live configuration owned by a Monitor and guarded by its lock."""

    timeout_ms: int = DEFAULT_TIMEOUT_MS
    check_interval_sec: int = DEFAULT_CHECK_INTERVAL_SEC
    proxy_url: str = ""
    wan_servers: list[WanServer] = field(default_factory=lambda: list(DEFAULT_WAN_SERVERS))
    lan_interface: str = ""

    def __post_init__(self) -> None:
        if not self.wan_servers:
            raise ConfigError("At least one WAN server must be configured")
        if len(self.wan_servers) > MAX_WAN_SERVERS:
            raise ConfigError(f"At most {MAX_WAN_SERVERS} WAN servers are supported (got {len(self.wan_servers)})")

    @property
    def primary(self) -> WanServer:
        """The only WAN server that setters may replace."""
        return self.wan_servers[0]

    def replace_primary(self, host: str | None = None, port: int | None = None) -> None:
        """Swap the primary WAN server, keeping whichever half is not given."""
        current = self.wan_servers[0]
        self.wan_servers[0] = WanServer(
            host=current.host if host is None else host,
            port=current.port if port is None else port,
        )

    def copy(self) -> "MonitorConfig":
        return MonitorConfig(
            timeout_ms=self.timeout_ms,
            check_interval_sec=self.check_interval_sec,
            proxy_url=self.proxy_url,
            wan_servers=list(self.wan_servers),
            lan_interface=self.lan_interface,
        )


def build_monitor_config(options: NetworkConfig | None = None) -> MonitorConfig:
    """Apply construction options over the defaults.

    The default WAN servers are always seeded first so the list is never
    empty. ``lan_interface`` is left empty when not given; the monitor
    resolves it by auto-detection.
    """
    options = options or NetworkConfig()
    config = MonitorConfig(
        timeout_ms=clamp_timeout_ms(options.timeout_ms),
        check_interval_sec=clamp_check_interval(options.check_interval_sec),
        proxy_url=options.proxy_url or "",
        lan_interface=options.lan_interface or "",
    )
    if options.wan_test_host and _is_positive_int(options.wan_test_port):
        config.replace_primary(options.wan_test_host, options.wan_test_port)
    return config


@dataclass(frozen=True)
class LoggingConfig:
    """Configuration for application logging."""

    verbose: bool = False


@dataclass(frozen=True)
class AppConfig:
    """Main configuration container loaded from YAML."""

    network: NetworkConfig = field(default_factory=NetworkConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _optional_int(data: dict, key: str) -> int | None:
    """Read an optional integer field, rejecting non-numeric values."""
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")


def _optional_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    return str(value) if value is not None else None


def _parse_network_config(data: dict | None) -> NetworkConfig:
    """Parse network configuration section."""
    if data is None:
        return NetworkConfig()
    if not isinstance(data, dict):
        raise ConfigError("'network' section must be a dictionary")

    return NetworkConfig(
        timeout_ms=_optional_int(data, "timeout_ms"),
        check_interval_sec=_optional_int(data, "check_interval_sec"),
        proxy_url=_optional_str(data, "proxy_url"),
        wan_test_host=_optional_str(data, "wan_test_host"),
        wan_test_port=_optional_int(data, "wan_test_port"),
        lan_interface=_optional_str(data, "lan_interface"),
    )


def _parse_logging_config(data: dict | None) -> LoggingConfig:
    """Parse logging configuration section."""
    if data is None:
        return LoggingConfig()
    if not isinstance(data, dict):
        raise ConfigError("'logging' section must be a dictionary")

    return LoggingConfig(verbose=bool(data.get("verbose", False)))


# Environment variable -> (network key, is numeric)
_ENV_OVERRIDES = {
    "NETSTATUSPI_TIMEOUT_MS": ("timeout_ms", True),
    "NETSTATUSPI_CHECK_INTERVAL": ("check_interval_sec", True),
    "NETSTATUSPI_PROXY_URL": ("proxy_url", False),
    "NETSTATUSPI_WAN_HOST": ("wan_test_host", False),
    "NETSTATUSPI_WAN_PORT": ("wan_test_port", True),
    "NETSTATUSPI_LAN_INTERFACE": ("lan_interface", False),
}


def _apply_env_overrides(config_data: dict) -> dict:
    """Apply environment variable overrides to configuration.

    Supported overrides:
    - NETSTATUSPI_TIMEOUT_MS: Override network.timeout_ms
    - NETSTATUSPI_CHECK_INTERVAL: Override network.check_interval_sec
    - NETSTATUSPI_PROXY_URL: Override network.proxy_url
    - NETSTATUSPI_WAN_HOST: Override network.wan_test_host
    - NETSTATUSPI_WAN_PORT: Override network.wan_test_port
    - NETSTATUSPI_LAN_INTERFACE: Override network.lan_interface
    """
    network = config_data.get("network")
    if network is None:
        network = config_data["network"] = {}
    if not isinstance(network, dict):
        raise ConfigError("'network' section must be a dictionary")

    for env_name, (key, numeric) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is None:
            continue
        if numeric:
            try:
                network[key] = int(value)
            except ValueError:
                raise ConfigError(f"{env_name} must be an integer, got {value!r}")
        else:
            network[key] = value

    return config_data


def load_config(config_path: str | None = None) -> AppConfig:
    """Load and validate configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file, or None to use
            defaults plus environment overrides only.

    Returns:
        Validated AppConfig object.

    Raises:
        ConfigError: If the file cannot be read or configuration is invalid.
    """
    if config_path is None:
        data: dict = {}
    else:
        path = Path(config_path)

        if not path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML configuration: {e}")
        except OSError as e:
            raise ConfigError(f"Failed to read configuration file: {e}")

        if data is None:
            raise ConfigError("Configuration file is empty")

        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a YAML dictionary")

    data = _apply_env_overrides(data)

    return AppConfig(
        network=_parse_network_config(data.get("network")),
        logging=_parse_logging_config(data.get("logging")),
    )
