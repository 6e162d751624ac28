from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading

from prometheus_client import CollectorRegistry

from . import __version__
from .config import ConfigError, ProbeFailurePolicy, apply_cli_overrides, configure_logging, load_config
from .metrics import NetworkMetrics
from .prober import LatencyProber
from .resolver import AddressResolver
from .scheduler import Scheduler
from .server import create_app, make_http_server


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	parser = argparse.ArgumentParser(
		prog="netexporter",
		description=f"External address and latency exporter (v{__version__})",
	)
	parser.add_argument("-ifname", help="Network interface name, used as metric label")
	parser.add_argument("-ifip", help="Local address to bind the external address lookup to")
	parser.add_argument("-debug", action="store_true", help="Emit log lines")
	parser.add_argument("--config", help="Path to YAML configuration file")
	parser.add_argument(
		"--probe-failure",
		choices=[policy.value for policy in ProbeFailurePolicy],
		help="What to do when every echo attempt fails",
	)
	return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
	args = parse_args(argv)
	try:
		config = apply_cli_overrides(load_config(args.config), args)
	except ConfigError as exc:
		print(f"configuration error: {exc}", file=sys.stderr)
		sys.exit(1)
	configure_logging(config)
	logger = logging.getLogger("netexporter")
	logger.info("netexporter starting...")

	metrics = NetworkMetrics(CollectorRegistry())
	resolver = AddressResolver(config, metrics)
	prober = LatencyProber(config)
	server = None

	def shutdown_server() -> None:
		if server is not None:
			threading.Thread(target=server.shutdown, name="server-shutdown", daemon=True).start()

	scheduler = Scheduler(config, resolver, prober, metrics, on_fatal=shutdown_server)
	scheduler.seed()

	try:
		server = make_http_server(create_app(metrics))
	except OSError as exc:
		logger.error("cannot start http server: %s", exc)
		resolver.close()
		sys.exit(1)

	def handle_term(signum, frame) -> None:
		logger.info("received signal %s, shutting down", signum)
		scheduler.stop()
		shutdown_server()

	signal.signal(signal.SIGTERM, handle_term)
	scheduler.start()
	try:
		server.serve_forever()
	except KeyboardInterrupt:
		logger.info("shutting down")
	finally:
		scheduler.stop()
		scheduler.join(timeout=1.0)
		server.server_close()
		resolver.close()
	if scheduler.exit_code:
		sys.exit(scheduler.exit_code)


if __name__ == "__main__":
	main()
