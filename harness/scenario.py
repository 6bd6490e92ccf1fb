"""Scenario groups: ordered steps sharing one setup and one tracker.

A group is the unit of isolation of the suite. Its steps run in order and
each step fails on its own; a step that depends on an earlier step's id
fails when it asks the tracker for an id that was never recorded. Groups
never share trackers, so one group's failures cannot leak ids into
another.

Concrete groups live in ``harness.groups``.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

from config.settings import HarnessConfig
from harness.exceptions import HarnessError
from harness.logger import get_logger, log_scope
from harness.models import Session
from harness.probe import HttpProbe, ProbeResult
from harness.tracker import ResourceLifecycleTracker

log = get_logger(__name__)


@dataclass
class SuiteContext:
    """State threaded explicitly through every scenario group.

    Attributes:
        config: HarnessConfig for the run.
        probe: Open HttpProbe.
        session: The run's single authenticated session.
    """

    config: HarnessConfig
    probe: HttpProbe
    session: Session

    async def call(self, method: str, path: str, **kwargs: Any) -> ProbeResult:
        """Send an authenticated probe carrying the session cookie."""
        return await self.probe.send(method, path, headers=self.session.headers(), **kwargs)


class StepResult(BaseModel):
    """Outcome of one step.

    Attributes:
        group: Name of the owning scenario group.
        step: Step description.
        passed: Whether every expectation held.
        error_type: Exception class name on failure.
        message: Failure message on failure.
        duration_ms: Wall time of the step.
    """

    group: str
    step: str
    passed: bool
    error_type: str | None = None
    message: str | None = None
    duration_ms: float = 0.0


Step = tuple[str, Callable[[], Awaitable[None]]]


class ScenarioGroup(ABC):
    """Base class for an ordered cluster of steps.

    Subclasses declare ``name``, may override ``setup()`` for a private
    preparation step, and list their steps in execution order.

    Attributes:
        context: Shared SuiteContext.
        tracker: Resource ids created inside this group only.

    Example:
        class CategoryManagement(ScenarioGroup):
            name = "Category Management"

            def steps(self) -> list[Step]:
                return [("should create a new category", self.create_category)]
    """

    name: str = ""

    def __init__(self, context: SuiteContext) -> None:
        self.context = context
        self.tracker = ResourceLifecycleTracker(scope=self.name)

    async def setup(self) -> None:
        """Prepare state needed by every step of the group."""

    @abstractmethod
    def steps(self) -> list[Step]:
        """Return ``(description, coroutine function)`` pairs in run order."""
        ...

    async def run(self) -> list[StepResult]:
        """Run setup and then every step, collecting one result per step.

        A failing setup fails every step of the group without running
        them. A failing step is recorded and the next step still runs.
        """
        with log_scope(group=self.name):
            return await self._run_group()

    async def _run_group(self) -> list[StepResult]:
        log.info("Scenario group started")
        steps = self.steps()

        try:
            with log_scope(step="setup"):
                await self.setup()
        except HarnessError as exc:
            log.error(
                "Group setup failed",
                error_type=type(exc).__name__,
                error=exc.message,
            )
            return [
                StepResult(
                    group=self.name,
                    step=description,
                    passed=False,
                    error_type=type(exc).__name__,
                    message=f"setup failed: {exc.message}",
                )
                for description, _ in steps
            ]

        results: list[StepResult] = []
        for description, step in steps:
            with log_scope(step=description):
                results.append(await self._run_step(description, step))

        # ids still held are resources the group created and left on the server
        log.info(
            "Scenario group finished",
            passed=sum(r.passed for r in results),
            failed=sum(not r.passed for r in results),
            resources_left=self.tracker.snapshot(),
        )
        return results

    async def _run_step(self, description: str, step: Callable[[], Awaitable[None]]) -> StepResult:
        started = time.perf_counter()
        try:
            await step()
        except (HarnessError, AssertionError) as exc:
            duration_ms = (time.perf_counter() - started) * 1000
            message = exc.message if isinstance(exc, HarnessError) else str(exc)
            log.warning(
                "Step failed",
                error_type=type(exc).__name__,
                error=message,
            )
            return StepResult(
                group=self.name,
                step=description,
                passed=False,
                error_type=type(exc).__name__,
                message=message,
                duration_ms=duration_ms,
            )

        duration_ms = (time.perf_counter() - started) * 1000
        log.info("Step passed", duration_ms=round(duration_ms, 1))
        return StepResult(group=self.name, step=description, passed=True, duration_ms=duration_ms)
