"""Test program lifecycle: setup, registration, run and finish."""

import logging
from typing import Callable, Optional

from tapharness.config import HarnessConfig
from tapharness.core.output import DiagnosticQueue, OutputChannel
from tapharness.core.registry import ParameterizedTest, Registry, SimpleTest
from tapharness.core.runner import ExitStatus, TestRunner

logger = logging.getLogger(__name__)


class Harness:
    """Holds the registry and run collaborators of one test program.

    Test functions usually close over the harness to set a custom title
    or to record diagnostics::

        harness = Harness()

        def test_decode():
            if not decode(b"..."):
                harness.error("decode returned nothing")
                return False
            return True

        harness.add_test("test_decode", test_decode)
        sys.exit(harness.main("test_codec"))
    """

    def __init__(
        self,
        config: Optional[HarnessConfig] = None,
        output: Optional[OutputChannel] = None,
    ):
        self.config = config if config is not None else HarnessConfig.from_environment()
        self.output = output if output is not None else OutputChannel()
        self.registry = Registry(capacity=self.config.capacity)
        self.diagnostics = DiagnosticQueue()
        self.seed = 0
        self.is_setup = False
        self.runner: Optional[TestRunner] = None

    def setup(self) -> None:
        """Resolve the random order seed and announce it."""
        self.seed = self.config.resolve_seed()
        self.is_setup = True
        if self.seed != 0:
            self.output.comment(self.config.base_indent, f"RAND SEED {self.seed}")
            self.output.flush_stdout()
            logger.debug("Randomizing test order with seed %d", self.seed)

    def add_test(self, name: str, fn: Callable[[], object]) -> SimpleTest:
        return self.registry.add_test(name, fn)

    def add_all_tests(
        self,
        name: str,
        fn: Callable[[int], object],
        num: int,
        subtest: bool = False,
    ) -> ParameterizedTest:
        return self.registry.add_all_tests(name, fn, num, subtest)

    def set_test_title(self, title: Optional[str]) -> None:
        """Replace the title reported for the running test."""
        if self.runner is not None:
            self.runner.set_test_title(title)

    def subtest_level(self) -> int:
        """Current TAP indentation in spaces."""
        if self.runner is not None:
            return self.runner.level
        return self.config.base_indent

    def error(self, message: str) -> None:
        """Record a diagnostic, reported only if the running test fails."""
        self.diagnostics.push(message)

    def run_tests(self, program_name: str) -> ExitStatus:
        """Run every registered test, calling setup() first if it has not run."""
        if not self.is_setup:
            self.setup()
        self.runner = TestRunner(
            registry=self.registry,
            output=self.output,
            diagnostics=self.diagnostics,
            base_level=self.config.base_indent,
            seed=self.seed,
        )
        return self.runner.run_tests(program_name)

    def finish(self, status: ExitStatus) -> int:
        """Flush and close the output channel, returning the process exit code."""
        self.output.close()
        return int(status)

    def main(self, program_name: str) -> int:
        """Set up, run every registered test and finish."""
        self.setup()
        status = self.run_tests(program_name)
        return self.finish(status)
