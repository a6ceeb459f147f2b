"""NetStatusPi - Lightweight WAN/LAN connectivity monitor for Raspberry Pi."""

import argparse
import logging
import signal
import sys
from threading import Event
from typing import Optional

__version__ = "0.1.0"

# Global shutdown event for signal handlers
_shutdown_event: Optional[Event] = None

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


def _handle_shutdown(signum: int, frame: object) -> None:
    """Signal handler for graceful shutdown."""
    sig_name = signal.Signals(signum).name
    logger.info("Received %s, initiating shutdown...", sig_name)
    if _shutdown_event is not None:
        _shutdown_event.set()


def _cmd_run(args: argparse.Namespace) -> None:
    """Execute the run command - monitor connectivity until signalled."""
    global _shutdown_event

    from .config import ConfigError, load_config

    # 1. Load configuration
    try:
        config = load_config(args.config)
    except ConfigError as e:
        _setup_logging(args.verbose)
        logger.error("Configuration error: %s", e)
        sys.exit(2)

    _setup_logging(args.verbose or config.logging.verbose)
    logger.info("NetStatusPi %s starting...", __version__)
    if args.config:
        logger.info("Configuration loaded from %s", args.config)

    # Import here to allow logging setup first
    from .monitor import Monitor, MonitorError

    # 2. Setup shutdown handler
    _shutdown_event = Event()
    signal.signal(signal.SIGTERM, _handle_shutdown)
    signal.signal(signal.SIGINT, _handle_shutdown)

    # 3. Start monitor
    try:
        monitor = Monitor(config.network)
    except MonitorError as e:
        logger.error("Failed to start monitor: %s", e)
        sys.exit(2)

    try:
        logger.info("Monitor running, waiting for shutdown signal...")
        _shutdown_event.wait()
    except KeyboardInterrupt:
        # Backup handler if signal doesn't work
        logger.info("Keyboard interrupt received")
    finally:
        monitor.stop()
        logger.info("Final status: %s", monitor.to_string())
        logger.info("Shutdown complete")


def _cmd_status(args: argparse.Namespace) -> None:
    """Execute the status command - run one check cycle and print the result."""
    from .config import ConfigError, load_config
    from .monitor import Monitor, MonitorError

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(2)

    _setup_logging(args.verbose or config.logging.verbose)

    try:
        monitor = Monitor(config.network)
    except MonitorError as e:
        print(f"Error: {e}")
        sys.exit(2)

    try:
        if not monitor.wait_for_check(timeout=args.timeout):
            print(f"Error: no check completed within {args.timeout}s")
            sys.exit(2)
        snapshot = monitor.snapshot()
    finally:
        monitor.stop()

    print(snapshot)
    sys.exit(0 if snapshot.wan_up else 1)


def _cmd_detect(args: argparse.Namespace) -> None:
    """Execute the detect command - show the default-route interface."""
    from .config import LOOPBACK_INTERFACE
    from .interfaces import InterfaceDetectionError, detect_default_interface

    try:
        iface = detect_default_interface()
    except InterfaceDetectionError as e:
        print(f"{LOOPBACK_INTERFACE} (fallback: {e})")
        return

    if iface is None:
        print(f"{LOOPBACK_INTERFACE} (fallback: no default route)")
    else:
        print(iface)


def _add_config_arguments(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to YAML configuration file (default: built-in defaults)",
    )
    subparser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )


def main() -> None:
    """Main entry point for the netstatuspi package."""
    parser = argparse.ArgumentParser(
        description="NetStatusPi - Lightweight WAN/LAN connectivity monitor"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"netstatuspi {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")

    # Run subcommand (default behavior)
    run_parser = subparsers.add_parser(
        "run",
        help="Monitor connectivity until interrupted (default)",
    )
    _add_config_arguments(run_parser)
    run_parser.set_defaults(func=_cmd_run)

    # Status subcommand
    status_parser = subparsers.add_parser(
        "status",
        help="Run one check cycle and print the result",
    )
    _add_config_arguments(status_parser)
    status_parser.add_argument(
        "--timeout",
        type=float,
        default=60.0,
        help="Seconds to wait for the first check cycle (default: 60)",
    )
    status_parser.set_defaults(func=_cmd_status)

    # Detect subcommand
    detect_parser = subparsers.add_parser(
        "detect",
        help="Print the interface carrying the default route",
    )
    detect_parser.set_defaults(func=_cmd_detect)

    args = parser.parse_args()

    # Default to 'run' if no command specified
    if args.command is None:
        args.config = None
        args.verbose = False
        args.func = _cmd_run

    args.func(args)
