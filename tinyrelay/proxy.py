import argparse
import logging
import signal
import sys

from .Core.header import MAX_OBJECT_SIZE, RelayConfig, SocksProxy
from .log import setup_logging
from .TinyRelayServer import TinyRelayServer

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tinyrelay", description="HTTP/1.0 forwarding proxy")
    parser.add_argument("port", type=int, help="Port to listen on")
    parser.add_argument("-H", "--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--socks", metavar="URL",
                        help="Dial origins through this proxy, e.g. socks5://127.0.0.1:9050")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Socket timeout in seconds (default: block forever)")
    parser.add_argument("--buffer-size", type=int, default=MAX_OBJECT_SIZE,
                        help="Response transfer chunk size in bytes")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log generated requests")
    return parser


def config_from_args(parser: argparse.ArgumentParser, args) -> RelayConfig:
    socks_proxy = None
    if args.socks:
        try:
            socks_proxy = SocksProxy.from_url(args.socks)
        except ValueError as e:
            parser.error(str(e))
    if args.buffer_size <= 0:
        parser.error("--buffer-size must be positive")
    return RelayConfig(
        listening_addr=args.host,
        listening_port=args.port,
        buffer_size=args.buffer_size,
        timeout=args.timeout,
        socks_proxy=socks_proxy
    )


def install_signal_handlers(server: TinyRelayServer):
    """Process-wide signal policy, set once at startup from the main thread."""
    # A client that hangs up mid-response must only fail its own handler
    if hasattr(signal, "SIGPIPE"):
        signal.signal(signal.SIGPIPE, signal.SIG_IGN)

    def shutdown(signum, frame):
        logger.warning("Shutting down the server...")
        server.stop()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)


def main(argv=None):
    """
    Main function to run the TinyRelay proxy server.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    config = config_from_args(parser, args)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)

    server = TinyRelayServer(config)
    install_signal_handlers(server)
    try:
        server.start()
    except OSError as e:
        logger.error(f"Failed to listen on port {args.port}: {e}")
        sys.exit(1)
    logger.info("✅ TinyRelay stopped")


if __name__ == "__main__":
    main()
