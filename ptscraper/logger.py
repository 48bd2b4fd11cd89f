"""Structured logging configuration using loguru.

The library itself only calls get_logger(); installing sinks is left to the
embedding application through configure_logging(), which replaces loguru's
handlers with:

- a colorized, human-readable stderr sink
- a JSON-lines file sink with rotation, retention and gzip compression

Engine modules log with keyword context (site, url, field, selector). The
``site`` key is lifted to the top level of each JSON line so that one
service's extraction misses can be grepped out of a shared log.
"""

import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from config.settings import GlobalConfig, get_config
from ptscraper.exceptions import LoggingInitializationError

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[module]}</cyan> | "
    "<level>{message}</level>"
)

LOG_FILE_NAME = "ptscraper_{time:YYYY-MM-DD}.json"


def _to_json_line(record: dict[str, Any]) -> str:
    extra = {k: v for k, v in record["extra"].items() if k != "json_line"}
    entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "location": f"{record['name']}:{record['function']}:{record['line']}",
    }
    if "site" in extra:
        entry["site"] = extra["site"]
    if extra:
        entry["context"] = extra

    exception = record["exception"]
    if exception is not None and exception.type is not None:
        entry["exception"] = {"type": exception.type.__name__, "value": str(exception.value)}

    return json.dumps(entry, default=str, ensure_ascii=False)


def _attach_json_line(record: dict[str, Any]) -> None:
    record["extra"]["json_line"] = _to_json_line(record)


def _validate_log_directory(log_dir: Path) -> None:
    """Create ``log_dir`` and prove it is writable.

    Raises:
        LoggingInitializationError: If the directory cannot be created or
            written to.
    """
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        marker = log_dir / ".write_test"
        marker.write_text("ok")
        marker.unlink()
    except PermissionError as exc:
        raise LoggingInitializationError(
            log_dir=str(log_dir), reason=f"Permission denied: {exc}"
        ) from exc
    except OSError as exc:
        raise LoggingInitializationError(log_dir=str(log_dir), reason=str(exc)) from exc


def configure_logging(config: GlobalConfig | None = None) -> None:
    """Install the stderr and JSON file sinks.

    Call once during application bootstrap.

    Args:
        config: Optional GlobalConfig instance. If None, uses singleton.

    Raises:
        LoggingInitializationError: If log directory validation fails.
    """
    if config is None:
        config = get_config()

    _validate_log_directory(config.log_dir)

    logger.configure(
        handlers=[
            {
                "sink": sys.stderr,
                "format": CONSOLE_FORMAT,
                "level": config.log_level,
                "colorize": True,
                "backtrace": config.debug,
                "diagnose": config.debug,
            },
            {
                "sink": str(config.log_dir / LOG_FILE_NAME),
                "format": lambda record: "{extra[json_line]}\n",
                "level": config.log_level,
                "rotation": config.log_rotation,
                "retention": config.log_retention,
                "compression": "gz",
                "encoding": "utf-8",
            },
        ],
        extra={"module": config.app_name},
        patcher=_attach_json_line,
    )

    logger.info(
        "Logging initialized",
        environment=config.environment,
        log_level=config.log_level,
        log_dir=str(config.log_dir),
    )


def get_logger(name: str) -> "logger":
    """Return the shared loguru logger bound with a module name.

    Example:
        >>> log = get_logger(__name__)
        >>> log.debug("Field resolved", field="uploaded", site="SDBits")
    """
    return logger.bind(module=name)
