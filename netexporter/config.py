from __future__ import annotations

import argparse
import enum
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path

import yaml

from .errors import ExporterError


class ConfigError(ExporterError):
	"""Raised when configuration cannot be loaded."""


class ProbeFailurePolicy(str, enum.Enum):
	FATAL = "fatal"
	RETRY = "retry"


@dataclass(frozen=True)
class ExporterConfig:
	interface_name: str = ""
	interface_ip: str = ""
	debug: bool = False
	log_level: str = "DEBUG"
	echo_url: str = "https://icanhazip.com"
	http_timeout: float = 5.0
	interval: float = 5.0
	ping_timeout: float = 5.0
	ping_attempts: int = 5
	probe_failure_policy: ProbeFailurePolicy = ProbeFailurePolicy.FATAL


_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_LOG_FORMAT = "%(asctime)s %(levelname)8s %(name)s | %(message)s"
# werkzeug logs every served request on its own logger
_GATED_LOGGERS = ("netexporter", "werkzeug")
_ENV_PREFIX = "NETEXPORTER_"
_ENV_KEYS = (
	"interface_name",
	"interface_ip",
	"log_level",
	"echo_url",
	"http_timeout",
	"interval",
	"ping_timeout",
	"ping_attempts",
	"probe_failure_policy",
	"debug",
)


def load_config(path: str | None) -> ExporterConfig:
	if path:
		data = _load_from_file(path)
	else:
		data = _load_from_env()
	return _build_config(data)


def _load_from_file(path: str) -> dict:
	candidate = Path(path)
	if not candidate.is_file():
		msg = f"configuration file '{path}' not found"
		raise ConfigError(msg)
	with candidate.open("r", encoding="utf-8") as handle:
		loaded = yaml.safe_load(handle)
	if loaded is None:
		msg = f"configuration file '{path}' is empty"
		raise ConfigError(msg)
	if not isinstance(loaded, dict):
		msg = f"configuration file '{path}' must contain a mapping"
		raise ConfigError(msg)
	return loaded


def _load_from_env() -> dict:
	config: dict[str, str] = {}
	for key in _ENV_KEYS:
		value = os.getenv(_ENV_PREFIX + key.upper())
		if value is not None:
			config[key] = value
	return config


def _build_config(raw: dict) -> ExporterConfig:
	defaults = ExporterConfig()
	log_level = str(raw.get("log_level", defaults.log_level)).upper()
	if log_level not in _LOG_LEVELS:
		log_level = defaults.log_level
	policy_raw = str(raw.get("probe_failure_policy", defaults.probe_failure_policy.value)).lower()
	try:
		policy = ProbeFailurePolicy(policy_raw)
	except ValueError:
		msg = f"unknown probe_failure_policy '{policy_raw}' (expected fatal or retry)"
		raise ConfigError(msg) from None
	return ExporterConfig(
		interface_name=str(raw.get("interface_name", defaults.interface_name)),
		interface_ip=str(raw.get("interface_ip", defaults.interface_ip)),
		debug=_coerce_bool(raw.get("debug", defaults.debug)),
		log_level=log_level,
		echo_url=str(raw.get("echo_url", defaults.echo_url)),
		http_timeout=_positive(raw, "http_timeout", defaults.http_timeout, float),
		interval=_positive(raw, "interval", defaults.interval, float),
		ping_timeout=_positive(raw, "ping_timeout", defaults.ping_timeout, float),
		ping_attempts=_positive(raw, "ping_attempts", defaults.ping_attempts, int),
		probe_failure_policy=policy,
	)


def _positive(raw: dict, key: str, default, cast):
	value = raw.get(key, default)
	try:
		number = cast(value)
	except (TypeError, ValueError):
		msg = f"{key} must be a number, got '{value}'"
		raise ConfigError(msg) from None
	if cast is int and isinstance(value, float) and not value.is_integer():
		msg = f"{key} must be a whole number, got {value}"
		raise ConfigError(msg)
	if number <= 0:
		msg = f"{key} must be positive, got {number}"
		raise ConfigError(msg)
	return number


def _coerce_bool(value: object) -> bool:
	if isinstance(value, bool):
		return value
	return str(value).strip().lower() in ("1", "true", "yes", "on")


def apply_cli_overrides(config: ExporterConfig, args: argparse.Namespace) -> ExporterConfig:
	overrides: dict[str, object] = {}
	if args.ifname is not None:
		overrides["interface_name"] = args.ifname
	if args.ifip is not None:
		overrides["interface_ip"] = args.ifip
	if args.debug:
		overrides["debug"] = True
	if args.probe_failure is not None:
		overrides["probe_failure_policy"] = ProbeFailurePolicy(args.probe_failure)
	return replace(config, **overrides)


def configure_logging(config: ExporterConfig) -> None:
	logging.basicConfig(format=_LOG_FORMAT)
	level = config.log_level if config.debug else logging.CRITICAL + 1
	for name in _GATED_LOGGERS:
		logging.getLogger(name).setLevel(level)
