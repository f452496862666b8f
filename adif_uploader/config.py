"""Configuration loading from CLI args, env vars, and an optional YAML file."""

import argparse
import codecs
import logging
import os
import sys
from dataclasses import dataclass

import yaml

from adif_uploader.errors import ConfigError, UsageError
from adif_uploader.reader import DEFAULT_CHUNK_SIZE
from adif_uploader.uploader import CONNECT_TIMEOUT_S, READ_TIMEOUT_S, UPLOAD_METHODS

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# setting name -> (environment variable, converter)
_SETTINGS = {
    "method": ("ADIF_UPLOAD_METHOD", str),
    "chunk_size": ("ADIF_CHUNK_SIZE", int),
    "connect_timeout": ("ADIF_CONNECT_TIMEOUT", float),
    "read_timeout": ("ADIF_READ_TIMEOUT", float),
    "encoding": ("ADIF_ENCODING", str),
    "log_level": ("ADIF_LOG_LEVEL", str),
    "user_agent": ("ADIF_USER_AGENT", str),
}


@dataclass(frozen=True)
class Config:
    base_url: str
    key_file: str
    log_file: str
    profile_id: str | None = None
    method: str = "PUT"
    chunk_size: int = DEFAULT_CHUNK_SIZE
    connect_timeout: float = CONNECT_TIMEOUT_S
    read_timeout: float = READ_TIMEOUT_S
    encoding: str = "utf-8"
    log_level: str = "INFO"
    user_agent: str | None = None

    @property
    def timeout(self) -> tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)


class UsageArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports bad arguments as UsageError instead of exiting 2."""

    def error(self, message):
        self.print_usage(sys.stderr)
        raise UsageError(message)


def build_cli_parser() -> argparse.ArgumentParser:
    parser = UsageArgumentParser(
        prog="adif-uploader",
        description="Upload new QSOs from a growing ADIF log to Cloudlog",
    )
    parser.add_argument("base_url", help="Cloudlog base URL, e.g. https://log.example.org/")
    parser.add_argument("key_file", help="File whose first line is the Cloudlog API key")
    parser.add_argument(
        "target", nargs="+", metavar="[PROFILE_ID] LOG_FILE",
        help="Optional station profile ID followed by the ADIF log file to watch",
    )
    parser.add_argument("--config", default=None, help="Path to YAML settings file")
    parser.add_argument("--method", choices=UPLOAD_METHODS, type=str.upper, default=None,
                        help="HTTP method used for uploads (default: PUT)")
    parser.add_argument("--chunk-size", type=int, default=None,
                        help=f"Bytes per log read (default: {DEFAULT_CHUNK_SIZE})")
    parser.add_argument("--connect-timeout", type=float, default=None,
                        help=f"HTTP connect timeout in seconds (default: {CONNECT_TIMEOUT_S:g})")
    parser.add_argument("--read-timeout", type=float, default=None,
                        help=f"HTTP response timeout in seconds (default: {READ_TIMEOUT_S:g})")
    parser.add_argument("--encoding", default=None,
                        help="Text encoding of the log file (default: utf-8)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    unknown = set(data) - set(_SETTINGS)
    if unknown:
        logger.warning("Ignoring unknown settings in %s: %s", path, ", ".join(sorted(unknown)))
    logger.info("Loaded YAML config from %s", path)
    return {k: v for k, v in data.items() if k in _SETTINGS}


def _convert(name: str, value, source: str):
    convert = _SETTINGS[name][1]
    try:
        return convert(value)
    except (TypeError, ValueError) as e:
        raise UsageError(f"Invalid value for {name} from {source}: {value!r}") from e


def _validate(cfg: Config):
    if cfg.method not in UPLOAD_METHODS:
        raise UsageError(f"Unsupported upload method {cfg.method!r}")
    if cfg.chunk_size <= 0:
        raise UsageError("chunk_size must be positive")
    if cfg.connect_timeout <= 0 or cfg.read_timeout <= 0:
        raise UsageError("timeouts must be positive")
    if cfg.log_level not in LOG_LEVELS:
        raise UsageError(f"Unknown log level {cfg.log_level!r}")
    try:
        codecs.lookup(cfg.encoding)
    except LookupError as e:
        raise UsageError(f"Unknown encoding {cfg.encoding!r}") from e


def load_config(argv: list[str] | None = None) -> Config:
    """Build Config from defaults <- YAML file <- env vars <- CLI args (highest priority)."""
    if argv is None:
        argv = sys.argv[1:]

    parser = build_cli_parser()
    if not argv:
        parser.print_usage(sys.stderr)
        raise UsageError("missing arguments")
    args = parser.parse_args(argv)

    if len(args.target) > 2:
        parser.error("too many positional arguments")
    if len(args.target) == 2:
        profile_id, log_file = args.target
    else:
        profile_id, log_file = None, args.target[0]

    settings: dict = {}
    for name, value in load_yaml_config(args.config).items():
        if value is not None:
            settings[name] = _convert(name, value, "config file")

    for name, (env_var, _) in _SETTINGS.items():
        if env_var in os.environ:
            settings[name] = _convert(name, os.environ[env_var], env_var)

    for name in ("method", "chunk_size", "connect_timeout", "read_timeout", "encoding"):
        value = getattr(args, name)
        if value is not None:
            settings[name] = value
    if args.verbose:
        settings["log_level"] = "DEBUG"

    if "method" in settings:
        settings["method"] = settings["method"].upper()
    if "log_level" in settings:
        settings["log_level"] = settings["log_level"].upper()

    cfg = Config(
        base_url=args.base_url,
        key_file=args.key_file,
        log_file=log_file,
        profile_id=profile_id or None,
        **settings,
    )
    _validate(cfg)
    return cfg
