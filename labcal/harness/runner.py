"""
Harness Runner

Runs suites sequentially. Inside a suite:
1. before_all hooks (a failure fails every test in the suite)
2. for each test: before_each, the test raced against its timeout,
   then after_each
3. after_all hooks

after_each/after_all failures are logged, not fatal.
"""
import asyncio
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from labcal.harness.api import (
    ApiSession,
    cleanup_test_resources,
    force_cleanup_test_tenants,
)
from labcal.harness.suite import (
    FAILED,
    PASSED,
    SKIPPED,
    RunReport,
    Suite,
    SuiteResult,
    TestOutcome,
)
from labcal.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TEST_TIMEOUT = 5.0

# Called as progress(phase, payload); phases: suite-start, suite-complete, complete
ProgressCallback = Callable[[str, Dict[str, Any]], None]


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


async def _run_hooks(hooks, suite: Suite, phase: str) -> None:
    """Run teardown hooks; failures are logged and swallowed."""
    for hook in hooks:
        try:
            await hook()
        except Exception as e:
            logger.error(f"{phase} hook failed in suite {suite.name}: {_describe(e)}",
                         extra={"suite": suite.name})


async def run_suite(
    suite: Suite,
    test_timeout: float = DEFAULT_TEST_TIMEOUT,
    result: Optional[SuiteResult] = None,
) -> SuiteResult:
    """
    Run one suite. Outcomes are appended to `result` as each test finishes,
    so a caller holding it keeps partial results if the run is cancelled.
    """
    if result is None:
        result = SuiteResult(name=suite.name)
    suite_started = time.perf_counter()

    try:
        for hook in suite.before_all_hooks:
            await hook()
    except Exception as e:
        error = f"before_all hook failed: {_describe(e)}"
        logger.error(f"Suite {suite.name}: {error}", extra={"suite": suite.name})
        result.outcomes = [TestOutcome(t.name, FAILED, 0.0, error) for t in suite.tests]
        await _run_hooks(suite.after_all_hooks, suite, "after_all")
        result.duration_ms = _elapsed_ms(suite_started)
        return result

    for test in suite.tests:
        if test.skip:
            result.outcomes.append(TestOutcome(test.name, SKIPPED))
            continue

        timeout = test.timeout or test_timeout
        started = time.perf_counter()
        try:
            for hook in suite.before_each_hooks:
                await hook()
            await asyncio.wait_for(test.func(), timeout=timeout)
            outcome = TestOutcome(test.name, PASSED)
        except asyncio.TimeoutError:
            outcome = TestOutcome(test.name, FAILED, error=f"Test timed out after {timeout}s")
        except Exception as e:
            outcome = TestOutcome(test.name, FAILED, error=_describe(e))
        outcome.duration_ms = _elapsed_ms(started)
        await _run_hooks(suite.after_each_hooks, suite, "after_each")

        if outcome.status == FAILED:
            logger.warning(f"FAIL {suite.name} :: {test.name}: {outcome.error}", extra={"suite": suite.name})
        else:
            logger.debug(f"PASS {suite.name} :: {test.name}", extra={"suite": suite.name})
        result.outcomes.append(outcome)

    await _run_hooks(suite.after_all_hooks, suite, "after_all")
    result.duration_ms = _elapsed_ms(suite_started)
    return result


def _notify(progress: Optional[ProgressCallback], phase: str, payload: Dict[str, Any]) -> None:
    if progress is None:
        return
    try:
        progress(phase, payload)
    except Exception as e:
        logger.error(f"Progress callback failed during {phase}: {_describe(e)}")


async def run_suites(
    suites: Sequence[Suite],
    session: Optional[ApiSession] = None,
    test_timeout: float = DEFAULT_TEST_TIMEOUT,
    run_timeout: Optional[float] = None,
    cleanup_after: bool = True,
    progress: Optional[ProgressCallback] = None,
) -> RunReport:
    """
    Run suites in order and aggregate a report.

    When run_timeout elapses the remaining suites are abandoned and every
    test tenant is force-deleted. The interrupted suite stays in the report
    with the outcomes recorded before the timeout. Otherwise, with cleanup_after, tenants in
    the session's cleanup registry are deleted at the end.
    """
    report = RunReport()
    started = time.perf_counter()

    async def run_all() -> None:
        for index, suite in enumerate(suites):
            _notify(progress, "suite-start", {"suite": suite.name, "index": index, "total": len(suites)})
            suite_result = SuiteResult(name=suite.name)
            report.suites.append(suite_result)
            await run_suite(suite, test_timeout, suite_result)
            _notify(progress, "suite-complete", {"suite": suite.name, "result": suite_result.to_dict()})

    try:
        if run_timeout:
            await asyncio.wait_for(run_all(), timeout=run_timeout)
        else:
            await run_all()
    except asyncio.TimeoutError:
        report.timed_out = True
        logger.error(f"Test run timed out after {run_timeout}s")
        if session is not None:
            report.cleanup = await force_cleanup_test_tenants(session)

    if session is not None and cleanup_after and not report.timed_out:
        report.cleanup = await cleanup_test_resources(session)

    report.duration_ms = _elapsed_ms(started)
    logger.info(
        f"Test run complete: {report.passed} passed, {report.failed} failed, {report.skipped} skipped"
    )
    _notify(progress, "complete", report.to_dict())
    return report


def summarize_failures(report: RunReport) -> List[str]:
    return [f"{f['suite']} :: {f['test']}: {f['error']}" for f in report.failures()]
