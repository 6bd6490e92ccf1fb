"""CFP contract harness entry point.

Bootstrap and orchestration only; the suite itself lives in ``harness``.

Responsibilities:
    1. Load and validate configuration
    2. Initialize logging infrastructure (fail-fast on error)
    3. Run the suite once against the configured deployment
    4. Print the summary and map the outcome to an exit code

Exit codes:
    0    every step passed
    1    at least one step failed, or startup failed
    2    credential bootstrap failed, no scenario ran
    130  interrupted

Usage:
    CFP_BASE_URL=https://cfp-server.example.app python main.py
"""

import asyncio
import sys

from loguru import logger

from config.settings import HarnessConfig, get_config
from harness.exceptions import HarnessError, LoggingInitializationError
from harness.logger import configure_logging
from harness.reporter import SuiteReporter
from harness.runner import SuiteReport, run_suite


async def _run_suite(config: HarnessConfig) -> int:
    """Run the suite and report it.

    Args:
        config: The validated HarnessConfig instance.

    Returns:
        Exit code derived from the SuiteReport.
    """
    logger.info(
        "Suite execution started",
        app_name=config.app_name,
        environment=config.environment,
        base_url=config.base_url,
        timeout_ms=config.request_timeout_ms,
    )

    report: SuiteReport = await run_suite(config)

    reporter = SuiteReporter()
    print(reporter.render(report))
    reporter.log_summary(report)

    return report.exit_code


def main() -> int:
    """Application entry point.

    Returns:
        Exit code (see module docstring).
    """
    # Step 1: Load configuration (validates via Pydantic)
    try:
        config = get_config()
    except Exception as exc:
        # Cannot log yet - print to stderr
        print(f"FATAL: Configuration loading failed: {exc}", file=sys.stderr)
        return 1

    # Step 2: Initialize logging (fail-fast)
    try:
        configure_logging(config)
    except LoggingInitializationError as exc:
        print(f"FATAL: {exc}", file=sys.stderr)
        return 1

    # Step 3: Execute the suite
    try:
        return asyncio.run(_run_suite(config))
    except KeyboardInterrupt:
        logger.warning("Suite interrupted by user (Ctrl+C)")
        return 130
    except Exception as exc:
        return _handle_fatal_error(exc)


def _handle_fatal_error(exc: Exception) -> int:
    """Log an error that escaped the suite and return the exit code.

    Args:
        exc: The exception that ended the run.
    """
    if isinstance(exc, HarnessError):
        logger.critical(
            "Fatal harness error",
            error_type=type(exc).__name__,
            message=exc.message,
            context=exc.context,
        )
        return 1

    # Unexpected error - log full traceback
    logger.exception("Unexpected fatal error", error=str(exc))
    return 1


if __name__ == "__main__":
    sys.exit(main())
