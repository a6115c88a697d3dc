"""
Settings for the Lever MCP server.

Everything is read from LEVER_* environment variables, optionally seeded by a
.env file next to the mcp-server-python directory. Covered here:
- Lever credentials and API base URL
- MCP transport, name and bind address
- client throttling, retry and pagination limits
- logging (stderr always, plus an optional file)
"""

import logging
import os
from pathlib import Path
from typing import Callable, List, Optional, TypeVar

from dotenv import load_dotenv

_REPO_ROOT = Path(__file__).resolve().parent.parent

load_dotenv(dotenv_path=_REPO_ROOT / ".env")

VALID_TRANSPORTS = ("stdio", "sse", "streamable-http")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(__name__)

N = TypeVar("N", int, float)


def _env_number(name: str, default: N, cast: Callable[[str], N]) -> N:
    """Read a number from the environment; a blank or unparseable value keeps the default."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {cast.__name__} for {name}: {raw!r}; using {default}")
        return default


def _parse_int(name: str, default: int) -> int:
    return _env_number(name, default, int)


def _parse_float(name: str, default: float) -> float:
    return _env_number(name, default, float)


class Config:
    """
    Runtime settings of the server and its Lever client.

    A relative LEVER_MCP_LOG_FILE is taken relative to the repository root.
    """

    def __init__(self):
        self._repo_root = _REPO_ROOT

        self.lever_api_key = os.getenv("LEVER_API_KEY", "").strip()
        self.lever_api_base_url = os.getenv("LEVER_API_BASE_URL", "https://api.lever.co/v1")

        self.log_level = os.getenv("LEVER_MCP_LOG_LEVEL", "INFO").upper()
        self.log_file = self._log_file_from_env()

        self.server_name = os.getenv("LEVER_MCP_SERVER_NAME", "lever-mcp-server")
        self.transport = os.getenv("LEVER_MCP_TRANSPORT", "stdio").strip().lower()
        self.host = os.getenv("LEVER_MCP_HOST", "127.0.0.1")
        self.port = _parse_int("LEVER_MCP_PORT", 8000)

        # Client throttling and retries
        self.rate_limit_capacity = _parse_int("LEVER_RATE_LIMIT_CAPACITY", 15)
        self.rate_limit_refill_per_second = _parse_float("LEVER_RATE_LIMIT_REFILL_PER_SECOND", 8.0)
        self.retry_jitter = _parse_float("LEVER_RETRY_JITTER", 0.1)
        self.http_timeout_seconds = _parse_float("LEVER_HTTP_TIMEOUT_SECONDS", 30.0)

        # Multi-page scans
        self.page_delay_seconds = _parse_float("LEVER_PAGE_DELAY_SECONDS", 0.2)
        self.max_api_calls = _parse_int("LEVER_MAX_API_CALLS", 45)
        self.aggregation_timeout_seconds = _parse_float("LEVER_AGGREGATION_TIMEOUT_SECONDS", 25.0)

    def _log_file_from_env(self) -> Optional[Path]:
        """Log file named by LEVER_MCP_LOG_FILE, or None to log to stderr only."""
        name = os.getenv("LEVER_MCP_LOG_FILE")
        if not name:
            return None
        path = Path(name)
        return path if path.is_absolute() else self._repo_root / path

    @property
    def has_api_key(self) -> bool:
        return bool(self.lever_api_key)

    def setup_logging(self):
        """
        Install stderr (and optional file) handlers on the root logger.

        Nothing is written to stdout, which carries MCP messages under the
        stdio transport. An unknown LEVER_MCP_LOG_LEVEL means INFO.
        """
        level = getattr(logging, self.log_level, logging.INFO)
        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

        handlers: List[logging.Handler] = [logging.StreamHandler()]
        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(self.log_file))

        root = logging.getLogger()
        root.setLevel(level)
        root.handlers.clear()
        for handler in handlers:
            handler.setLevel(level)
            handler.setFormatter(formatter)
            root.addHandler(handler)

        # httpx logs each request at INFO; the executor already logs every attempt
        logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

        if self.log_file:
            logger.info(f"Logging to file: {self.log_file}")
        logger.info(f"Log level set to: {self.log_level}")

    def validate(self) -> List[str]:
        """
        Check the settings and describe anything that looks wrong.

        Returns:
            Warning messages; empty when the configuration is usable as is
        """
        warnings = []

        if not self.has_api_key:
            warnings.append(
                "LEVER_API_KEY is not set. "
                "The server will start but every tool will fail until a key is configured."
            )

        if self.transport not in VALID_TRANSPORTS:
            warnings.append(
                f"Unknown LEVER_MCP_TRANSPORT '{self.transport}'; "
                f"expected one of {', '.join(VALID_TRANSPORTS)}. Falling back to stdio."
            )

        range_checks = [
            ("LEVER_RATE_LIMIT_CAPACITY", self.rate_limit_capacity, self.rate_limit_capacity >= 1, "at least 1"),
            (
                "LEVER_RATE_LIMIT_REFILL_PER_SECOND",
                self.rate_limit_refill_per_second,
                self.rate_limit_refill_per_second > 0,
                "positive",
            ),
            ("LEVER_RETRY_JITTER", self.retry_jitter, self.retry_jitter >= 0, "non-negative"),
            ("LEVER_MAX_API_CALLS", self.max_api_calls, self.max_api_calls >= 1, "at least 1"),
            (
                "LEVER_AGGREGATION_TIMEOUT_SECONDS",
                self.aggregation_timeout_seconds,
                self.aggregation_timeout_seconds > 0,
                "positive",
            ),
            ("LEVER_PAGE_DELAY_SECONDS", self.page_delay_seconds, self.page_delay_seconds >= 0, "non-negative"),
        ]
        for name, value, ok, expected in range_checks:
            if not ok:
                warnings.append(f"{name} must be {expected} (got {value})")

        if self.log_file:
            log_dir = self.log_file.parent
            try:
                log_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                warnings.append(f"Cannot create log directory {log_dir}: {e}")
            else:
                if not os.access(log_dir, os.W_OK):
                    warnings.append(f"Log directory not writable: {log_dir}")

        return warnings


config = Config()


def get_config() -> Config:
    """Shared Config instance of the running server."""
    return config
