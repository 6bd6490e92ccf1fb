"""Structured logging configuration using loguru.

Two sinks are installed:
- Console output, colorized and human-readable, for whoever runs the suite.
- A JSON-lines file in ``log_dir`` with rotation and retention, so a failed
  run against a live deployment can be inspected request by request.

Log calls pass structured keyword context (method, path, status, email...)
which lands in the ``context`` object of each JSON line. The run, group and
step a line was emitted under are promoted to top-level ``run_id``,
``group`` and ``step`` fields; see ``log_scope``.
"""

import json
import sys
from contextlib import AbstractContextManager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger

from config.settings import HarnessConfig, get_config
from harness.exceptions import LoggingInitializationError

SCOPE_FIELDS = ("run_id", "group", "step")


def _json_serializer(record: dict[str, Any]) -> str:
    """Format a loguru record as a single JSON line.

    Args:
        record: Loguru record dictionary containing log metadata.

    Returns:
        JSON-formatted string representation of the log record.
    """
    extra = {k: v for k, v in record["extra"].items() if k != "serialized"}

    line: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": extra.pop("module", record["name"]),
        "line": record["line"],
    }
    for field in SCOPE_FIELDS:
        if field in extra:
            line[field] = extra.pop(field)

    if record["exception"] is not None:
        line["exception"] = {
            "type": record["exception"].type.__name__ if record["exception"].type else None,
            "value": str(record["exception"].value) if record["exception"].value else None,
        }

    if extra:
        line["context"] = extra

    return json.dumps(line, default=str) + "\n"


def log_scope(**fields: Any) -> AbstractContextManager[None]:
    """Attach fields to every log line emitted inside the block.

    Backed by ``logger.contextualize``, so the fields follow the current
    task across awaits and do not leak into concurrent tasks.

    Example:
        >>> with log_scope(group="Category Management", step="should list all categories"):
        ...     await probe.send(...)
    """
    return logger.contextualize(**fields)


def _validate_log_directory(log_dir: Path) -> None:
    """Validate log directory exists and is writable.

    Args:
        log_dir: Path to the log directory.

    Raises:
        LoggingInitializationError: If directory creation or write test fails.
    """
    try:
        log_dir.mkdir(parents=True, exist_ok=True)

        test_file = log_dir / ".write_test"
        test_file.write_text("write_test")
        test_file.unlink()

    except PermissionError as exc:
        raise LoggingInitializationError(
            log_dir=str(log_dir),
            reason=f"Permission denied: {exc}",
        ) from exc
    except OSError as exc:
        raise LoggingInitializationError(
            log_dir=str(log_dir),
            reason=f"OS error during directory validation: {exc}",
        ) from exc


def configure_logging(config: HarnessConfig | None = None) -> None:
    """Initialize the logging infrastructure.

    Call once during bootstrap, before the suite starts issuing requests.

    Args:
        config: Optional HarnessConfig instance. If None, uses singleton.

    Raises:
        LoggingInitializationError: If log directory validation fails.
    """
    if config is None:
        config = get_config()

    # Remove default handler to prevent duplicate logs
    logger.remove()

    console_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )

    logger.add(
        sys.stderr,
        format=console_format,
        level=config.log_level,
        colorize=True,
        backtrace=config.debug,
        diagnose=config.debug,
    )

    if config.log_to_file:
        _validate_log_directory(config.log_dir)

        log_file_path = config.log_dir / "cfp_harness_{time:YYYY-MM-DD}.json"

        logger.add(
            str(log_file_path),
            format="{extra[serialized]}",
            level=config.log_level,
            rotation=config.log_rotation,
            retention=config.log_retention,
            compression="gz",
            serialize=False,  # custom serializer below
            filter=lambda record: record["extra"].update(serialized=_json_serializer(record)) or True,
        )

    logger.info(
        "Logging infrastructure initialized",
        app_name=config.app_name,
        environment=config.environment,
        log_level=config.log_level,
        log_dir=str(config.log_dir) if config.log_to_file else None,
    )


def get_logger(name: str) -> "logger":
    """Get a logger bound with the module name.

    Args:
        name: Module or component name for log attribution.

    Returns:
        Loguru logger instance bound with the provided name context.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("Category created", category_id="66f0c2")
    """
    return logger.bind(module=name)
