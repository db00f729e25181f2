"""
Smoke-Test Harness

Suite/hook orchestration, assertions and cleanup helpers for exercising a
running backend over HTTP. Invoked from the admin API
(POST /api/admin/test-runs) or standalone:

    python -m labcal.harness --base-url http://localhost:3001
"""
from labcal.harness.api import (
    ApiRequestError,
    ApiSession,
    CleanupRegistry,
    cleanup_registry,
    retry_api_call,
)
from labcal.harness.runner import run_suite, run_suites
from labcal.harness.suite import RunReport, Suite, SuiteResult
from labcal.harness.suites import SUITES, available_suites, build_suites

__all__ = [
    "ApiRequestError",
    "ApiSession",
    "CleanupRegistry",
    "cleanup_registry",
    "retry_api_call",
    "run_suite",
    "run_suites",
    "RunReport",
    "Suite",
    "SuiteResult",
    "SUITES",
    "available_suites",
    "build_suites",
]
