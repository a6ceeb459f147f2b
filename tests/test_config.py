"""Tests for the configuration module."""

from pathlib import Path

import pytest

from netstatuspi.config import (
    DEFAULT_CHECK_INTERVAL_SEC,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_WAN_SERVERS,
    MAX_WAN_SERVERS,
    AppConfig,
    ConfigError,
    MonitorConfig,
    NetworkConfig,
    WanServer,
    build_monitor_config,
    clamp_check_interval,
    clamp_port,
    clamp_timeout_ms,
    load_config,
)


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Create a temporary directory for config files."""
    return tmp_path


@pytest.fixture(autouse=True)
def clear_env(monkeypatch) -> None:
    """Keep host environment overrides out of the tests."""
    for name in (
        "NETSTATUSPI_TIMEOUT_MS",
        "NETSTATUSPI_CHECK_INTERVAL",
        "NETSTATUSPI_PROXY_URL",
        "NETSTATUSPI_WAN_HOST",
        "NETSTATUSPI_WAN_PORT",
        "NETSTATUSPI_LAN_INTERFACE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def valid_config_content() -> str:
    """Return a valid configuration YAML content."""
    return """network:
  timeout_ms: 500
  check_interval_sec: 2
  proxy_url: http://proxy.local:3128
  wan_test_host: 127.0.0.1
  wan_test_port: 1
  lan_interface: lo

logging:
  verbose: true
"""


class TestClampHelpers:
    """Tests for the silent input clamping helpers."""

    @pytest.mark.parametrize("value", [0, -5, None])
    def test_invalid_timeout_uses_default(self, value) -> None:
        """Zero, negative and missing timeouts become the 1000ms default."""
        assert clamp_timeout_ms(value) == DEFAULT_TIMEOUT_MS == 1000

    def test_positive_timeout_kept(self) -> None:
        """A positive timeout is kept unchanged."""
        assert clamp_timeout_ms(250) == 250

    @pytest.mark.parametrize("value", [0, -1, None])
    def test_invalid_interval_uses_default(self, value) -> None:
        """Zero, negative and missing intervals become the 5s default."""
        assert clamp_check_interval(value) == DEFAULT_CHECK_INTERVAL_SEC == 5

    def test_invalid_port_uses_default(self) -> None:
        """Non-positive ports become port 53."""
        assert clamp_port(0) == 53
        assert clamp_port(-80) == 53
        assert clamp_port(443) == 443

    @pytest.mark.parametrize("value", ["500", 2.5, True, [1000]])
    def test_wrong_type_uses_default(self, value) -> None:
        """Non-integer input falls back to the default instead of raising."""
        assert clamp_timeout_ms(value) == 1000
        assert clamp_check_interval(value) == 5
        assert clamp_port(value) == 53


class TestMonitorConfig:
    """Tests for MonitorConfig dataclass."""

    def test_defaults(self) -> None:
        """MonitorConfig defaults match the documented values."""
        config = MonitorConfig()
        assert config.timeout_ms == 1000
        assert config.check_interval_sec == 5
        assert config.proxy_url == ""
        assert config.wan_servers == list(DEFAULT_WAN_SERVERS)

    def test_default_wan_servers(self) -> None:
        """Four public DNS resolvers on port 53 are seeded in order."""
        assert [str(s) for s in DEFAULT_WAN_SERVERS] == [
            "8.8.8.8:53",
            "1.1.1.1:53",
            "9.9.9.9:53",
            "208.67.222.222:53",
        ]
        assert len(DEFAULT_WAN_SERVERS) == MAX_WAN_SERVERS

    def test_rejects_empty_server_list(self) -> None:
        """The WAN server list can never be empty."""
        with pytest.raises(ConfigError, match="At least one WAN server"):
            MonitorConfig(wan_servers=[])

    def test_rejects_too_many_servers(self) -> None:
        """The WAN server list is bounded."""
        servers = [WanServer("10.0.0.1", 53)] * (MAX_WAN_SERVERS + 1)
        with pytest.raises(ConfigError, match="At most"):
            MonitorConfig(wan_servers=servers)

    def test_replace_primary_only_touches_index_zero(self) -> None:
        """replace_primary leaves the fixed fallback servers alone."""
        config = MonitorConfig()
        config.replace_primary(host="10.1.2.3")
        assert config.primary == WanServer("10.1.2.3", 53)
        config.replace_primary(port=8080)
        assert config.primary == WanServer("10.1.2.3", 8080)
        assert config.wan_servers[1:] == list(DEFAULT_WAN_SERVERS[1:])

    def test_copy_is_independent(self) -> None:
        """Mutating a copy does not change the original."""
        config = MonitorConfig(lan_interface="eth0")
        clone = config.copy()
        clone.replace_primary(host="10.0.0.9")
        clone.lan_interface = "wlan0"
        assert config.primary == DEFAULT_WAN_SERVERS[0]
        assert config.lan_interface == "eth0"


class TestBuildMonitorConfig:
    """Tests for build_monitor_config."""

    def test_none_uses_all_defaults(self) -> None:
        """No options yields the default configuration with no interface yet."""
        config = build_monitor_config(None)
        assert config.timeout_ms == 1000
        assert config.check_interval_sec == 5
        assert config.proxy_url == ""
        assert config.wan_servers == list(DEFAULT_WAN_SERVERS)
        assert config.lan_interface == ""

    def test_invalid_numbers_replaced_silently(self) -> None:
        """Out-of-range numbers are clamped instead of raising."""
        config = build_monitor_config(NetworkConfig(timeout_ms=-1, check_interval_sec=0))
        assert config.timeout_ms == 1000
        assert config.check_interval_sec == 5

    def test_overrides_primary_when_host_and_port_given(self) -> None:
        """Host and port together replace the first WAN server."""
        config = build_monitor_config(NetworkConfig(wan_test_host="127.0.0.1", wan_test_port=1))
        assert config.primary == WanServer("127.0.0.1", 1)
        assert config.wan_servers[1:] == list(DEFAULT_WAN_SERVERS[1:])

    @pytest.mark.parametrize(
        "host,port",
        [("127.0.0.1", None), ("127.0.0.1", 0), (None, 80), ("", 80)],
    )
    def test_partial_override_ignored(self, host, port) -> None:
        """The primary server is only overridden with a host and a positive port."""
        config = build_monitor_config(NetworkConfig(wan_test_host=host, wan_test_port=port))
        assert config.primary == DEFAULT_WAN_SERVERS[0]

    def test_keeps_explicit_interface_and_proxy(self) -> None:
        """Interface and proxy are copied through."""
        config = build_monitor_config(NetworkConfig(lan_interface="eth1", proxy_url="http://p:1"))
        assert config.lan_interface == "eth1"
        assert config.proxy_url == "http://p:1"


class TestLoadConfig:
    """Tests for load_config function."""

    def test_loads_valid_config_from_file(self, config_dir: Path, valid_config_content: str) -> None:
        """Valid configuration file is loaded successfully."""
        config_file = config_dir / "config.yaml"
        config_file.write_text(valid_config_content)

        config = load_config(str(config_file))

        assert config.network == NetworkConfig(
            timeout_ms=500,
            check_interval_sec=2,
            proxy_url="http://proxy.local:3128",
            wan_test_host="127.0.0.1",
            wan_test_port=1,
            lan_interface="lo",
        )
        assert config.logging.verbose is True

    def test_none_path_uses_defaults(self) -> None:
        """No path means defaults only."""
        assert load_config(None) == AppConfig()

    def test_missing_sections_use_defaults(self, config_dir: Path) -> None:
        """A file with only a logging section keeps network defaults."""
        config_file = config_dir / "config.yaml"
        config_file.write_text("logging:\n  verbose: false\n")

        config = load_config(str(config_file))

        assert config.network == NetworkConfig()

    def test_raises_error_for_missing_file(self, config_dir: Path) -> None:
        """ConfigError is raised when file doesn't exist."""
        missing_file = config_dir / "nonexistent.yaml"
        with pytest.raises(ConfigError, match="Configuration file not found"):
            load_config(str(missing_file))

    def test_raises_error_for_empty_file(self, config_dir: Path) -> None:
        """ConfigError is raised for empty configuration file."""
        config_file = config_dir / "empty.yaml"
        config_file.write_text("")

        with pytest.raises(ConfigError, match="Configuration file is empty"):
            load_config(str(config_file))

    def test_raises_error_for_invalid_yaml(self, config_dir: Path) -> None:
        """ConfigError is raised for invalid YAML syntax."""
        config_file = config_dir / "invalid.yaml"
        config_file.write_text("invalid: yaml: syntax: ][")

        with pytest.raises(ConfigError, match="Failed to parse YAML configuration"):
            load_config(str(config_file))

    def test_raises_error_when_config_is_not_dict(self, config_dir: Path) -> None:
        """ConfigError is raised when configuration is not a dictionary."""
        config_file = config_dir / "notdict.yaml"
        config_file.write_text("- item1\n- item2")

        with pytest.raises(ConfigError, match="Configuration must be a YAML dictionary"):
            load_config(str(config_file))

    def test_raises_error_when_network_is_not_dict(self, config_dir: Path) -> None:
        """ConfigError is raised when the network section is a list."""
        config_file = config_dir / "config.yaml"
        config_file.write_text("network:\n  - eth0\n")

        with pytest.raises(ConfigError, match="'network' section must be a dictionary"):
            load_config(str(config_file))

    def test_raises_error_for_non_integer_timeout(self, config_dir: Path) -> None:
        """Numeric fields must be integers."""
        config_file = config_dir / "config.yaml"
        config_file.write_text("network:\n  timeout_ms: fast\n")

        with pytest.raises(ConfigError, match="'timeout_ms' must be an integer"):
            load_config(str(config_file))

    def test_raises_error_for_fractional_timeout(self, config_dir: Path) -> None:
        """A fractional number is rejected instead of truncated."""
        config_file = config_dir / "config.yaml"
        config_file.write_text("network:\n  timeout_ms: 1.9\n")

        with pytest.raises(ConfigError, match="'timeout_ms' must be an integer, got 1.9"):
            load_config(str(config_file))

    def test_whole_float_is_accepted(self, config_dir: Path) -> None:
        """A float with no fractional part loads as an integer."""
        config_file = config_dir / "config.yaml"
        config_file.write_text("network:\n  check_interval_sec: 10.0\n")

        config = load_config(str(config_file))

        assert config.network.check_interval_sec == 10
        assert isinstance(config.network.check_interval_sec, int)

    def test_negative_numbers_are_loaded_as_is(self, config_dir: Path) -> None:
        """Range problems are left for the monitor to clamp."""
        config_file = config_dir / "config.yaml"
        config_file.write_text("network:\n  timeout_ms: -5\n")

        config = load_config(str(config_file))

        assert config.network.timeout_ms == -5
        assert build_monitor_config(config.network).timeout_ms == 1000


class TestEnvironmentVariableOverrides:
    """Tests for NETSTATUSPI_* environment overrides."""

    def test_overrides_timeout(self, config_dir: Path, monkeypatch) -> None:
        """NETSTATUSPI_TIMEOUT_MS overrides the file value."""
        config_file = config_dir / "config.yaml"
        config_file.write_text("network:\n  timeout_ms: 500\n")
        monkeypatch.setenv("NETSTATUSPI_TIMEOUT_MS", "2000")

        config = load_config(str(config_file))

        assert config.network.timeout_ms == 2000

    def test_overrides_without_file(self, monkeypatch) -> None:
        """Overrides apply when no file is given."""
        monkeypatch.setenv("NETSTATUSPI_LAN_INTERFACE", "wlan0")
        monkeypatch.setenv("NETSTATUSPI_WAN_HOST", "10.0.0.1")
        monkeypatch.setenv("NETSTATUSPI_WAN_PORT", "443")
        monkeypatch.setenv("NETSTATUSPI_CHECK_INTERVAL", "30")
        monkeypatch.setenv("NETSTATUSPI_PROXY_URL", "http://proxy:8080")

        config = load_config(None)

        assert config.network.lan_interface == "wlan0"
        assert config.network.wan_test_host == "10.0.0.1"
        assert config.network.wan_test_port == 443
        assert config.network.check_interval_sec == 30
        assert config.network.proxy_url == "http://proxy:8080"

    def test_rejects_non_integer_override(self, monkeypatch) -> None:
        """Numeric overrides must parse as integers."""
        monkeypatch.setenv("NETSTATUSPI_WAN_PORT", "dns")

        with pytest.raises(ConfigError, match="NETSTATUSPI_WAN_PORT must be an integer"):
            load_config(None)
