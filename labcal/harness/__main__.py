"""
Standalone harness entry point.

Usage:
    python -m labcal.harness --base-url http://localhost:3001
    python -m labcal.harness --suite tenants --suite views --run-timeout 60
    python -m labcal.harness --diagnose
    python -m labcal.harness --cleanup

Exits 1 when any test fails, the run times out, or diagnosis finds a
problem.
"""
import argparse
import asyncio
import json
import sys
from typing import List, Optional

from labcal.config import get_settings
from labcal.harness.api import ApiSession, diagnose_environment, force_cleanup_test_tenants
from labcal.harness.runner import DEFAULT_TEST_TIMEOUT, run_suites, summarize_failures
from labcal.harness.suites import SUITES, build_suites
from labcal.utils.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="python -m labcal.harness",
        description="Run the API smoke-test suites against a running lab calendar backend.",
    )
    parser.add_argument("--base-url", default=f"http://localhost:{settings.PORT}",
                        help="Backend base URL (default: %(default)s)")
    parser.add_argument("--suite", action="append", choices=sorted(SUITES), dest="suites",
                        help="Suite to run; repeat for several (default: all)")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TEST_TIMEOUT,
                        help="Per-test timeout in seconds (default: %(default)s)")
    parser.add_argument("--run-timeout", type=float, default=None,
                        help="Abort the whole run after this many seconds")
    parser.add_argument("--cleanup-before", action="store_true",
                        help="Force-delete leftover test tenants before running")
    parser.add_argument("--no-cleanup", action="store_true",
                        help="Keep tenants created by the run")
    parser.add_argument("--diagnose", action="store_true",
                        help="Only check that the backend is reachable")
    parser.add_argument("--cleanup", action="store_true",
                        help="Only force-delete leftover test tenants")
    parser.add_argument("--json", action="store_true", help="Print the full report as JSON")
    parser.add_argument("--log-level", default="WARNING")
    return parser


def _print_progress(phase: str, payload: dict) -> None:
    if phase == "suite-start":
        print(f"[{payload['index'] + 1}/{payload['total']}] {payload['suite']}")
    elif phase == "suite-complete":
        result = payload["result"]
        print(f"    {result['passed']} passed, {result['failed']} failed, "
              f"{result['skipped']} skipped ({result['durationMs']:.0f} ms)")


async def main_async(args: argparse.Namespace) -> int:
    async with ApiSession.for_url(args.base_url) as session:
        diagnosis = await diagnose_environment(session)
        if args.diagnose or not diagnosis["healthy"]:
            for check in diagnosis["checks"]:
                status = "ok" if check["ok"] else f"FAILED: {check['detail']}"
                print(f"{check['name']}: {status}")
            if not diagnosis["healthy"]:
                print(f"Backend at {args.base_url} is not healthy; aborting.")
            return 0 if diagnosis["healthy"] else 1

        if args.cleanup or args.cleanup_before:
            result = await force_cleanup_test_tenants(session)
            print(f"Removed {len(result['cleaned'])} test tenants, {len(result['failed'])} failed")
            if args.cleanup:
                return 0 if not result["failed"] else 1

        report = await run_suites(
            build_suites(session, args.suites),
            session=session,
            test_timeout=args.timeout,
            run_timeout=args.run_timeout,
            cleanup_after=not args.no_cleanup,
            progress=None if args.json else _print_progress,
        )

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(f"\n{report.passed}/{report.total} passed, {report.failed} failed, "
              f"{report.skipped} skipped in {report.duration_ms / 1000:.1f}s")
        if report.timed_out:
            print("Run timed out; test tenants were force-deleted.")
        for line in summarize_failures(report):
            print(f"  FAIL {line}")
    return 0 if report.success else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(log_level=args.log_level)
    return asyncio.run(main_async(args))


if __name__ == "__main__":
    sys.exit(main())
