"""Sequential orchestration of one suite run.

    bootstrap ──► groups (in order, steps in order) ──► teardown

Teardown runs in a ``finally`` block, so it is invoked exactly once per
run whatever happened before it. A BootstrapError aborts the run before
any group executes; any other failure stays inside its step.
"""

import uuid
from typing import Any

import httpx
from pydantic import BaseModel, Field

from config.settings import HarnessConfig, get_config
from harness.bootstrap import CredentialBootstrapper
from harness.exceptions import BootstrapError
from harness.groups import DEFAULT_GROUPS, build_groups
from harness.logger import get_logger, log_scope
from harness.models import Session
from harness.probe import HttpProbe
from harness.scenario import ScenarioGroup, StepResult, SuiteContext
from harness.teardown import TeardownCoordinator

log = get_logger(__name__)

EXIT_OK = 0
EXIT_STEP_FAILURES = 1
EXIT_BOOTSTRAP_FAILED = 2


class SuiteReport(BaseModel):
    """Aggregate outcome of a run.

    Attributes:
        base_url: Deployment the suite ran against.
        identity_email: Account actually used, if bootstrap got that far.
        results: One StepResult per step, in execution order.
        aborted: True when bootstrap failed and no group ran.
        abort_reason: BootstrapError message when aborted.
        signed_out: Whether teardown's sign-out was confirmed.
        resources_left: Ids each group created and did not delete, by group.
    """

    base_url: str
    identity_email: str | None = None
    results: list[StepResult] = Field(default_factory=list)
    aborted: bool = False
    abort_reason: str | None = None
    signed_out: bool = False
    resources_left: dict[str, dict[str, str]] = Field(default_factory=dict)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.passed)

    @property
    def succeeded(self) -> bool:
        return not self.aborted and self.failed == 0

    @property
    def exit_code(self) -> int:
        if self.aborted:
            return EXIT_BOOTSTRAP_FAILED
        return EXIT_OK if self.failed == 0 else EXIT_STEP_FAILURES

    def failures(self) -> list[StepResult]:
        return [r for r in self.results if not r.passed]


class SuiteRunner:
    """Runs bootstrap, every scenario group and teardown, in that order.

    Attributes:
        config: HarnessConfig for the run.
        probe: Open HttpProbe shared by every phase.
        bootstrapper: Produces the run's session.
        teardown: Signs the session out afterwards.
        group_types: Scenario group classes, in execution order.
    """

    def __init__(
        self,
        probe: HttpProbe,
        config: HarnessConfig | None = None,
        group_types: tuple[type[ScenarioGroup], ...] = DEFAULT_GROUPS,
        bootstrapper: CredentialBootstrapper | None = None,
    ) -> None:
        self.config = config or get_config()
        self.probe = probe
        self.bootstrapper = bootstrapper or CredentialBootstrapper(probe, self.config)
        self.teardown = TeardownCoordinator(probe)
        self.group_types = group_types
        self.session: Session | None = None

    async def run(self) -> SuiteReport:
        """Execute the suite once.

        Every log line of the run carries the same ``run_id``.

        Returns:
            SuiteReport with every step outcome.
        """
        with log_scope(run_id=uuid.uuid4().hex[:12]):
            return await self._run()

    async def _run(self) -> SuiteReport:
        report = SuiteReport(base_url=self.config.base_url)
        log.info("Suite started", base_url=self.config.base_url, groups=len(self.group_types))

        try:
            self.session = await self.bootstrapper.acquire_session()
            report.identity_email = self.session.identity.email
            log.info("Session acquired", email=report.identity_email)

            context = SuiteContext(config=self.config, probe=self.probe, session=self.session)
            for group in build_groups(context, self.group_types):
                report.results.extend(await group.run())
                leftover = group.tracker.snapshot()
                if leftover:
                    report.resources_left[group.name] = leftover

        except BootstrapError as exc:
            log.critical(
                "Bootstrap failed - aborting suite",
                reason=exc.reason,
                email=exc.email,
            )
            report.aborted = True
            report.abort_reason = exc.message
        finally:
            report.signed_out = await self.teardown.sign_out(self.session)

        log.info(
            "Suite finished",
            passed=report.passed,
            failed=report.failed,
            aborted=report.aborted,
            signed_out=report.signed_out,
        )
        return report


async def run_suite(
    config: HarnessConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    **runner_kwargs: Any,
) -> SuiteReport:
    """Open a probe, run the suite once and close the probe.

    Args:
        config: Optional HarnessConfig. Uses singleton if not provided.
        transport: Optional httpx transport override.
        **runner_kwargs: Forwarded to SuiteRunner.

    Returns:
        The run's SuiteReport.
    """
    config = config or get_config()
    async with HttpProbe.create(config, transport=transport) as probe:
        return await SuiteRunner(probe, config, **runner_kwargs).run()
