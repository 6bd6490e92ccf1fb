"""Human-readable summary of a suite run.

Renders the report the way a test runner prints a test module: group
headings, one line per step, failure details at the end and a totals
line. Nothing is written to disk; results are not kept between runs.
"""

from harness.logger import get_logger
from harness.runner import SuiteReport

log = get_logger(__name__)

PASS_MARK = "✓"
FAIL_MARK = "✗"


class SuiteReporter:
    """Formats SuiteReport instances.

    Example:
        reporter = SuiteReporter()
        print(reporter.render(report))
        reporter.log_summary(report)
    """

    def render(self, report: SuiteReport) -> str:
        """Render the full text summary.

        Args:
            report: Completed SuiteReport.

        Returns:
            Multi-line summary string.
        """
        lines = [f"CFP Server - e2e tests ({report.base_url})"]

        if report.aborted:
            lines.append(f"  {FAIL_MARK} bootstrap aborted the suite: {report.abort_reason}")

        current_group = None
        for result in report.results:
            if result.group != current_group:
                current_group = result.group
                lines.append(f"  {current_group}")
            mark = PASS_MARK if result.passed else FAIL_MARK
            lines.append(f"    {mark} {result.step} ({result.duration_ms:.0f} ms)")

        failures = report.failures()
        if failures:
            lines.append("")
            lines.append("Failures:")
            for index, result in enumerate(failures, start=1):
                lines.append(f"  {index}) {result.group} › {result.step}")
                lines.append(f"     {result.error_type}: {result.message}")

        if report.resources_left:
            lines.append("")
            lines.append("Left on server:")
            for group, ids in report.resources_left.items():
                held = ", ".join(f"{role}={resource_id}" for role, resource_id in ids.items())
                lines.append(f"  {group}: {held}")

        lines.append("")
        lines.append(self._totals(report))
        if report.identity_email:
            lines.append(f"Identity: {report.identity_email}")
        return "\n".join(lines)

    def log_summary(self, report: SuiteReport) -> None:
        """Log the totals with structured context."""
        level = "INFO" if report.succeeded else "ERROR"
        log.log(
            level,
            "Suite summary",
            passed=report.passed,
            failed=report.failed,
            aborted=report.aborted,
            identity=report.identity_email,
            signed_out=report.signed_out,
            resources_left=report.resources_left,
            exit_code=report.exit_code,
        )

    @staticmethod
    def _totals(report: SuiteReport) -> str:
        if report.aborted:
            return "Tests: aborted before any scenario ran"
        total = report.passed + report.failed
        parts = []
        if report.failed:
            parts.append(f"{report.failed} failed")
        parts.append(f"{report.passed} passed")
        return f"Tests: {', '.join(parts)}, {total} total"
