"""Test execution and TAP reporting."""

import logging
import math
import random
import traceback
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Optional

from tapharness.config import INDENT_STEP
from tapharness.core.models import TestStatus, Verdict
from tapharness.core.output import DiagnosticQueue, OutputChannel
from tapharness.core.registry import ParameterizedTest, Registry, SimpleTest

logger = logging.getLogger(__name__)


class ExitStatus(IntEnum):
    """Process exit status of a test program."""

    SUCCESS = 0
    FAILURE = 1


@dataclass
class RunState:
    """Mutable state of a single run_tests invocation."""

    level: int
    seed: int
    rng: random.Random
    failures: int = 0
    title: Optional[str] = None
    results: list[Verdict] = field(default_factory=list)


class TestRunner:
    """Runs registered tests and reports them as TAP."""

    def __init__(
        self,
        registry: Registry,
        output: OutputChannel,
        diagnostics: Optional[DiagnosticQueue] = None,
        base_level: int = 0,
        seed: int = 0,
        error_callback: Optional[Callable[[str], None]] = None,
    ):
        """Initialize the test runner.

        Args:
            registry: Entries to execute
            output: Channel receiving TAP lines and diagnostics
            diagnostics: Error state filled by tests while they run
            base_level: Indentation of the outermost plan, in spaces
            seed: Random order seed, 0 for registration order
            error_callback: Receives queued diagnostics after a failure,
                defaults to writing them to stderr at the current level
        """
        self.registry = registry
        self.output = output
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticQueue()
        self.base_level = base_level
        self.seed = seed
        self.error_callback = error_callback or self._report_error
        self.state: Optional[RunState] = None

    @property
    def level(self) -> int:
        return self.state.level if self.state else self.base_level

    def set_test_title(self, title: Optional[str]) -> None:
        """Override the title reported for the running test or sub-case."""
        if self.state is not None:
            self.state.title = title

    def run_tests(self, program_name: str) -> ExitStatus:
        """Execute every registered entry and return the aggregate status."""
        state = RunState(
            level=self.base_level,
            seed=self.seed,
            rng=random.Random(self.seed),
        )
        self.state = state

        self._print_plan(program_name)

        for seq, index in enumerate(self._permutation(), start=1):
            entry = self.registry[index]
            if isinstance(entry, SimpleTest):
                verdict = self._run_simple(entry, seq)
            elif isinstance(entry, ParameterizedTest):
                verdict = self._run_parameterized(entry, seq)
            else:
                raise TypeError(f"Unknown test entry type: {type(entry).__name__}")

            state.results.append(verdict)
            if not verdict.passed:
                state.failures += 1

        logger.debug(
            "Finished %s: %d of %d entries failed",
            program_name,
            state.failures,
            len(self.registry),
        )
        if state.failures != 0:
            return ExitStatus.FAILURE
        return ExitStatus.SUCCESS

    @property
    def results(self) -> list[Verdict]:
        """Verdicts recorded by the latest run."""
        return list(self.state.results) if self.state else []

    def _print_plan(self, program_name: str) -> None:
        level = self.state.level
        if len(self.registry) < 1:
            self.output.skip_plan(level, program_name)
        else:
            if level > 0:
                self.output.subtest(level, program_name)
            self.output.plan(level, len(self.registry))
        self.output.flush_stdout()

    def _permutation(self) -> list[int]:
        """Return entry indices in execution order."""
        order = list(range(len(self.registry)))
        if self.state.seed == 0:
            return order

        # Fisher-Yates, walking down from the last slot
        rng = self.state.rng
        for i in range(len(order) - 1, 0, -1):
            j = rng.randrange(i + 1)
            order[i], order[j] = order[j], order[i]
        logger.debug("Shuffled %d entries with seed %d: %s", len(order), self.state.seed, order)
        return order

    def _stride(self, num: int) -> int:
        """Pick a step coprime with ``num`` so stepping visits every sub-case once."""
        if self.state.seed == 0 or num < 3:
            return 1
        while True:
            stride = self.state.rng.randrange(num)
            if stride != 0 and math.gcd(num, stride) == 1:
                return stride

    def _invoke(self, fn: Callable, *args) -> bool:
        try:
            return bool(fn(*args))
        except Exception:
            self.diagnostics.push(traceback.format_exc().rstrip())
            return False

    def _finalize(self, success: bool) -> None:
        if success:
            self.diagnostics.clear()
        else:
            self.diagnostics.drain(self.error_callback)

    def _report_error(self, message: str) -> None:
        self.output.diagnostic(self.level, message)

    def _run_simple(self, entry: SimpleTest, seq: int) -> Verdict:
        state = self.state
        state.title = entry.name
        success = self._invoke(entry.fn)

        self.output.flush()

        title = state.title if state.title is not None else entry.name
        self.output.verdict(state.level, success, seq, title)
        self.output.flush()
        self._finalize(success)

        return Verdict(
            seq=seq,
            name=entry.name,
            status=TestStatus.from_success(success),
            subcases=1,
            failed_subcases=0 if success else 1,
        )

    def _run_parameterized(self, entry: ParameterizedTest, seq: int) -> Verdict:
        state = self.state
        num = entry.num
        failed = 0

        state.level += INDENT_STEP
        if entry.subtest:
            self.output.subtest(state.level, entry.name)
            self.output.plan(state.level, num)
            self.output.flush_stdout()

        stride = self._stride(num)
        logger.debug("Running %s: %d cases, stride %d", entry.name, num, stride)

        j = -1
        for jj in range(num):
            j = (j + stride) % num
            state.title = None
            success = self._invoke(entry.fn, j)

            self.output.flush()

            if not success:
                failed += 1

            self._finalize(success)

            if entry.subtest:
                if state.title is not None:
                    self.output.verdict(state.level, success, jj + 1, state.title)
                else:
                    self.output.verdict(state.level, success, jj + 1, f"iteration {j + 1}")
                self.output.flush_stdout()

        state.level -= INDENT_STEP
        self.output.verdict(state.level, failed == 0, seq, entry.name)
        self.output.flush_stdout()

        return Verdict(
            seq=seq,
            name=entry.name,
            status=TestStatus.from_success(failed == 0),
            subcases=num,
            failed_subcases=failed,
        )

