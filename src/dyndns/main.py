"""
Dynamic DNS Server Main Entry Point

This script provides the main entry point for running the dynamic DNS server.
"""

import argparse
import asyncio
import os
import signal
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dyndns.config.loader import ConfigLoader
from dyndns.core import DNSServer, RequestHandler, keyring_from_config
from dyndns.dns_logging import (
    DNSRequestLogger,
    get_logger,
    log_exception,
    setup_logging,
    shutdown_logging,
)
from dyndns.storage import open_record_store

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class DynDNSApp:
    """Dynamic DNS Server Application"""

    def __init__(
        self,
        config_path: Optional[str] = None,
        overrides: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        self.config_path = config_path
        self.overrides = overrides or {}
        self.config = None
        self.store = None
        self.handler = None
        self.dns_server = None
        self.logger = None
        self._pid_file: Optional[Path] = None
        self._shutdown_event = asyncio.Event()

    def initialize(self) -> None:
        """Load configuration, set up logging and open the record store"""
        self.config = ConfigLoader(self.config_path).load_config(self.overrides)

        setup_logging(self.config.logging)
        self.logger = get_logger("dyndns_app")

        self.logger.info(
            "Structured logging configured",
            level=self.config.logging.level,
            format=self.config.logging.format,
            file=self.config.logging.file,
        )

        keyring = keyring_from_config(self.config.tsig.key, self.config.tsig.algorithm)

        self.store = open_record_store(
            self.config.storage.path, timeout=self.config.storage.open_timeout
        )

        request_logger = (
            DNSRequestLogger() if self.config.logging.enable_request_logging else None
        )
        self.handler = RequestHandler(
            self.store,
            keyring=keyring,
            require_signed_updates=self.config.security.require_signed_updates,
            request_logger=request_logger,
        )
        self.dns_server = DNSServer(self.config, self.handler)

        self.logger.info(
            "Dynamic DNS server initialized",
            storage=self.config.storage.path,
            record_sets=self.store.count(),
            tsig_enabled=keyring is not None,
            tsig_algorithm=self.config.tsig.algorithm if keyring else None,
        )

    async def start(self) -> None:
        """Start the server and run until a shutdown signal arrives"""
        if not self.dns_server:
            self.initialize()

        try:
            await self.dns_server.start()
            self._write_pid_file()

            self.logger.info(
                "Dynamic DNS server started successfully",
                bind_address=self.config.server.bind_address,
                dns_port=self.config.server.dns_port,
                tcp_enabled=self.config.server.enable_tcp,
            )

            loop = asyncio.get_running_loop()
            for sig in SHUTDOWN_SIGNALS:
                loop.add_signal_handler(sig, self._signal_handler, sig)
            try:
                await self._shutdown_event.wait()
            finally:
                for sig in SHUTDOWN_SIGNALS:
                    loop.remove_signal_handler(sig)

        except Exception as e:
            log_exception(self.logger, "Error running dynamic DNS server", e)
            raise
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop the server and release every resource"""
        if self.logger:
            self.logger.info("Shutting down dynamic DNS server")

        try:
            if self.dns_server:
                await self.dns_server.stop()
                if self.logger:
                    self.logger.info("Server stopped", **self.dns_server.get_stats())
        finally:
            if self.store:
                self.store.close()
            self._remove_pid_file()
            if self.logger:
                self.logger.info("Dynamic DNS server shutdown complete")
            shutdown_logging()

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    def _signal_handler(self, sig: signal.Signals) -> None:
        """Handle shutdown signals"""
        self.logger.info("Received shutdown signal", signal=sig.name)
        self.request_shutdown()

    def _write_pid_file(self) -> None:
        pid_file = self.config.server.pid_file
        if not pid_file:
            return

        path = Path(pid_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"{os.getpid()}\n", encoding="utf-8")
        self._pid_file = path

    def _remove_pid_file(self) -> None:
        if self._pid_file is None:
            return

        try:
            self._pid_file.unlink()
        except FileNotFoundError:
            pass
        self._pid_file = None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Dynamic DNS server with RFC2136 updates",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config", "-c", help="Configuration file path (YAML or JSON)")
    parser.add_argument("--port", type=int, help="Server port")
    parser.add_argument("--db-path", help="Location where the database is stored")
    parser.add_argument("--tsig", help="Use TSIG: keyname:base64secret")
    parser.add_argument("--tsig-algorithm", help="TSIG algorithm, e.g. hmac-md5")
    parser.add_argument("--logfile", help="Path to log file")
    parser.add_argument("--pid", help="PID file location")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level",
    )
    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Dict[str, Any]]:
    """Map command line flags onto configuration sections"""
    return {
        "server": {"dns_port": args.port, "pid_file": args.pid},
        "storage": {"path": args.db_path},
        "tsig": {"key": args.tsig, "algorithm": args.tsig_algorithm},
        "logging": {"file": args.logfile, "level": args.log_level},
    }


async def run(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    app = DynDNSApp(args.config, overrides_from_args(args))
    app.initialize()
    await app.start()


def main(argv: Optional[List[str]] = None) -> None:
    """Console script entry point"""
    try:
        asyncio.run(run(argv))
    except KeyboardInterrupt:
        print("\nDynamic DNS server interrupted")
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
