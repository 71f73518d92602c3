"""
Test Runner

Runs compiled test cases one action at a time and collects a TestReport.
Sequential mode shares one session across every test case; parallel mode
splits the cases into fixed-size batches that each own a session.
"""

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Callable, List, Optional

from .config import EngineConfig
from .engine.session import PageSession
from .engine.step_executor import ActionExecutor
from .models import Action, ActionType, TestCase, TestReport, TestResult

logger = logging.getLogger(__name__)

SessionProvider = Callable[[], AbstractAsyncContextManager]


def partition(test_cases: List[TestCase], batch_size: int) -> List[List[TestCase]]:
    """Split test cases into consecutive batches of at most batch_size."""
    size = max(1, batch_size)
    return [test_cases[i:i + size] for i in range(0, len(test_cases), size)]


class TestRunner:
    """Runs test cases against page sessions from a session provider."""

    __test__ = False  # keep pytest from collecting this class

    def __init__(
        self,
        session_provider: SessionProvider,
        config: Optional[EngineConfig] = None,
        executor: Optional[ActionExecutor] = None,
        log_callback: Optional[Callable[[str], None]] = None
    ):
        """
        Args:
            session_provider: Callable returning an async context manager that
                yields a PageSession, e.g. BrowserSessionFactory.session
            config: Engine configuration
            executor: Action executor; built from config when omitted
            log_callback: Receives timestamped progress lines
        """
        self.session_provider = session_provider
        self.config = config or EngineConfig()
        self.executor = executor or ActionExecutor(self.config)
        self.log_callback = log_callback

    def log(self, message: str):
        """Log message."""
        logger.info(message)
        if self.log_callback:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self.log_callback(f"[{timestamp}] {message}")

    async def run_test_case(self, test_case: TestCase, session: PageSession) -> TestResult:
        """Execute a test case, stopping at its first failing step."""
        self.log(f"Running test: {test_case.name}")
        start = datetime.now()
        result = TestResult(
            test_case_id=test_case.id,
            test_case_name=test_case.name,
            status="passed",
            duration=0.0
        )

        steps: List[Action] = list(test_case.actions)
        if test_case.url:
            steps.insert(0, Action(
                type=ActionType.NAVIGATE,
                value=test_case.url,
                description=f"Open {test_case.url}"
            ))

        for index, action in enumerate(steps, 1):
            outcome = await self.executor.execute(action, session, step_number=index, base_url=test_case.url)
            result.record(outcome)

            if not outcome.passed:
                result.status = "failed"
                result.failed_step = index
                result.error_message = f"Step {index} ({outcome.description}): {outcome.error.message}"
                self.log(f"  [FAIL] {result.error_message}")
                break

            self.log(f"  [OK] Step {index}: {outcome.description}")
            if self.config.interaction_delay_ms and index < len(steps):
                await self.executor.sleep(self.config.interaction_delay_ms / 1000)

        result.duration = (datetime.now() - start).total_seconds()
        self.log(f"Test {test_case.name}: {result.status.upper()} ({result.duration:.2f}s)")
        return result

    def _session_failure(self, test_case: TestCase, error: Exception) -> TestResult:
        """Failed result for a case whose session could not be opened or was lost."""
        message = f"Session error: {error}"
        self.log(f"  [FAIL] {test_case.name}: {message}")
        return TestResult(
            test_case_id=test_case.id,
            test_case_name=test_case.name,
            status="failed",
            duration=0.0,
            error_message=message
        )

    async def _run_on_session(self, test_cases: List[TestCase]) -> List[TestResult]:
        """Run cases in order on one provided session; session failures fail the remaining cases."""
        results: List[TestResult] = []
        try:
            async with self.session_provider() as session:
                for test_case in test_cases:
                    results.append(await self.run_test_case(test_case, session))
        except Exception as e:
            logger.error(f"Session failed after {len(results)} of {len(test_cases)} tests: {e}")
            results.extend(self._session_failure(tc, e) for tc in test_cases[len(results):])
        return results

    async def run_sequential(self, test_cases: List[TestCase]) -> List[TestResult]:
        """Run every test case in order on one shared session."""
        return await self._run_on_session(test_cases)

    async def run_parallel(
        self,
        test_cases: List[TestCase],
        batch_size: Optional[int] = None,
        concurrency: Optional[int] = None
    ) -> List[TestResult]:
        """
        Run batches concurrently, each on its own session.

        Cases inside a batch run in order. Results keep the input order.
        """
        batches = partition(test_cases, batch_size or self.config.batch_size)
        limit = asyncio.Semaphore(max(1, concurrency or self.config.concurrency))
        self.log(f"Running {len(test_cases)} tests in {len(batches)} batches")

        async def run_batch(number: int, batch: List[TestCase]) -> List[TestResult]:
            async with limit:
                self.log(f"Batch {number}: {len(batch)} tests")
                return await self._run_on_session(batch)

        grouped = await asyncio.gather(*(run_batch(n, b) for n, b in enumerate(batches, 1)))
        return [result for batch_results in grouped for result in batch_results]

    async def run(self, test_cases: List[TestCase], parallel: bool = False) -> TestReport:
        """Run test cases and summarise them in a report."""
        start = datetime.now()
        if parallel:
            results = await self.run_parallel(test_cases)
        else:
            results = await self.run_sequential(test_cases)

        duration = (datetime.now() - start).total_seconds()
        passed = sum(1 for r in results if r.status == "passed")
        failed = sum(1 for r in results if r.status == "failed")

        self.log("=" * 60)
        self.log("Test Summary:")
        self.log(f"  Total: {len(results)}")
        self.log(f"  Passed: {passed}")
        self.log(f"  Failed: {failed}")
        self.log(f"  Duration: {duration:.2f}s")
        self.log("=" * 60)

        return TestReport(
            id=f"report_{start.strftime('%Y%m%d_%H%M%S')}",
            executed_at=start,
            total_tests=len(results),
            passed=passed,
            failed=failed,
            duration=duration,
            results=results
        )
