"""
Suites and Results

A Suite holds lifecycle hooks and named async tests. Hooks and tests are
registered with decorators:

    suite = Suite("tenants")

    @suite.before_each
    async def reset():
        ...

    @suite.test("creates a tenant")
    async def creates_a_tenant():
        ...
"""
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

AsyncCallable = Callable[[], Awaitable[Any]]

PASSED = "passed"
FAILED = "failed"
SKIPPED = "skipped"


@dataclass
class HarnessTest:
    name: str
    func: AsyncCallable
    skip: bool = False
    timeout: Optional[float] = None


class Suite:
    """Named collection of async tests with before/after hooks."""

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self.tests: List[HarnessTest] = []
        self.before_all_hooks: List[AsyncCallable] = []
        self.after_all_hooks: List[AsyncCallable] = []
        self.before_each_hooks: List[AsyncCallable] = []
        self.after_each_hooks: List[AsyncCallable] = []

    def before_all(self, func: AsyncCallable) -> AsyncCallable:
        self.before_all_hooks.append(func)
        return func

    def after_all(self, func: AsyncCallable) -> AsyncCallable:
        self.after_all_hooks.append(func)
        return func

    def before_each(self, func: AsyncCallable) -> AsyncCallable:
        self.before_each_hooks.append(func)
        return func

    def after_each(self, func: AsyncCallable) -> AsyncCallable:
        self.after_each_hooks.append(func)
        return func

    def test(self, name: str, skip: bool = False, timeout: Optional[float] = None):
        """Register an async test under `name`."""
        def decorator(func: AsyncCallable) -> AsyncCallable:
            self.tests.append(HarnessTest(name=name, func=func, skip=skip, timeout=timeout))
            return func
        return decorator

    def __repr__(self):
        return f"<Suite {self.name} tests={len(self.tests)}>"


@dataclass
class TestOutcome:
    name: str
    status: str
    duration_ms: float = 0.0
    error: Optional[str] = None

    __test__ = False  # not a pytest test class

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "durationMs": round(self.duration_ms, 1),
            "error": self.error,
        }


@dataclass
class SuiteResult:
    name: str
    outcomes: List[TestOutcome] = field(default_factory=list)
    duration_ms: float = 0.0

    def _count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def passed(self) -> int:
        return self._count(PASSED)

    @property
    def failed(self) -> int:
        return self._count(FAILED)

    @property
    def skipped(self) -> int:
        return self._count(SKIPPED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "durationMs": round(self.duration_ms, 1),
            "tests": [o.to_dict() for o in self.outcomes],
        }


@dataclass
class RunReport:
    suites: List[SuiteResult] = field(default_factory=list)
    duration_ms: float = 0.0
    timed_out: bool = False
    cleanup: Optional[Dict[str, List[str]]] = None

    @property
    def passed(self) -> int:
        return sum(s.passed for s in self.suites)

    @property
    def failed(self) -> int:
        return sum(s.failed for s in self.suites)

    @property
    def skipped(self) -> int:
        return sum(s.skipped for s in self.suites)

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped

    @property
    def success(self) -> bool:
        return self.failed == 0 and not self.timed_out

    def failures(self) -> List[Dict[str, Any]]:
        return [
            {"suite": s.name, "test": o.name, "error": o.error}
            for s in self.suites
            for o in s.outcomes
            if o.status == FAILED
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "durationMs": round(self.duration_ms, 1),
            "timedOut": self.timed_out,
            "suites": [s.to_dict() for s in self.suites],
            "cleanup": self.cleanup,
        }
