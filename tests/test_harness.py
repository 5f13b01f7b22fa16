"""Tests for the harness lifecycle."""

import io

import pytest

from tapharness.config import HarnessConfig
from tapharness.core.harness import Harness
from tapharness.core.output import OutputChannel
from tapharness.core.registry import RegistryFullError
from tapharness.core.runner import ExitStatus


@pytest.fixture
def output():
    """Create an output channel over in-memory streams."""
    return OutputChannel(stdout=io.StringIO(), stderr=io.StringIO())


def make_harness(output, **config):
    return Harness(config=HarnessConfig(**config), output=output)


class TestHarness:
    """Tests for the Harness class."""

    def test_main_success(self, output):
        """Test a full passing program."""
        harness = make_harness(output)
        harness.add_test("a", lambda: True)
        harness.add_all_tests("p", lambda idx: True, 3, subtest=True)

        assert harness.main("prog") == 0
        assert not output.stdout.closed
        assert output.stdout.getvalue().splitlines() == [
            "1..2",
            "ok 1 - a",
            "    # Subtest: p",
            "    1..3",
            "    ok 1 - iteration 1",
            "    ok 2 - iteration 2",
            "    ok 3 - iteration 3",
            "ok 2 - p",
        ]

    def test_main_failure(self, output):
        """Test that a failing program returns a non-zero code."""
        harness = make_harness(output)
        harness.add_test("a", lambda: False)

        assert harness.main("prog") == 1

    def test_setup_without_seed(self, output):
        """Test that setup is silent when randomization is off."""
        harness = make_harness(output)
        harness.setup()

        assert harness.seed == 0
        assert output.stdout.getvalue() == ""

    def test_setup_announces_seed(self, output):
        """Test that setup prints the seed at the base indent."""
        harness = make_harness(output, seed=42, level=1)
        harness.setup()

        assert harness.seed == 42
        assert output.stdout.getvalue() == "    # RAND SEED 42\n"

    def test_nested_program(self, output):
        """Test that a nested program is indented and announced."""
        harness = make_harness(output, level=1)
        harness.add_test("a", lambda: True)

        harness.main("prog")

        assert output.stdout.getvalue().splitlines() == [
            "    # Subtest: prog",
            "    1..1",
            "    ok 1 - a",
        ]

    def test_seeded_runs_repeat(self):
        """Test that two harnesses with the same seed print the same report."""
        reports = []
        for _ in range(2):
            output = OutputChannel(stdout=io.StringIO(), stderr=io.StringIO())
            harness = make_harness(output, seed=99)
            for i in range(5):
                harness.add_test(f"t{i}", lambda: True)
            harness.add_all_tests("p", lambda idx: True, 8, subtest=True)
            harness.main("prog")
            reports.append(output.stdout.getvalue())

        assert reports[0] == reports[1]

    def test_title_and_level_from_tests(self, output):
        """Test that tests reach run state through the harness."""
        harness = make_harness(output)
        levels = []

        def case(idx):
            levels.append(harness.subtest_level())
            harness.set_test_title(f"case {idx}")
            return True

        harness.add_all_tests("p", case, 2, subtest=True)
        harness.main("prog")

        assert levels == [4, 4]
        assert "    ok 2 - case 1" in output.stdout.getvalue().splitlines()

    def test_subtest_level_before_run(self, output):
        """Test the level reported outside a run."""
        harness = make_harness(output, level=2)
        assert harness.subtest_level() == 8

    def test_error_reported_on_failure(self, output):
        """Test that recorded errors reach stderr when the test fails."""
        harness = make_harness(output)

        def failing():
            harness.error("mismatch at byte 3")
            return False

        harness.add_test("failing", failing)
        status = harness.run_tests("prog")

        assert status == ExitStatus.FAILURE
        assert output.stderr.getvalue() == "# mismatch at byte 3\n"

    def test_run_without_setup_uses_seed(self, output):
        """Test that run_tests resolves the configured seed when setup was skipped."""
        calls = []
        harness = make_harness(output, seed=42)
        for i in range(6):
            harness.add_test(f"t{i}", lambda i=i: calls.append(i) or True)

        harness.run_tests("prog")

        expected = []
        seeded = make_harness(OutputChannel(stdout=io.StringIO(), stderr=io.StringIO()), seed=42)
        for i in range(6):
            seeded.add_test(f"t{i}", lambda i=i: expected.append(i) or True)
        seeded.setup()
        seeded.run_tests("prog")

        assert harness.seed == 42
        assert output.stdout.getvalue().splitlines()[0] == "# RAND SEED 42"
        assert calls == expected

    def test_setup_runs_once(self, output):
        """Test that the seed is announced once when setup precedes run_tests."""
        harness = make_harness(output, seed=5)
        harness.add_test("a", lambda: True)

        harness.setup()
        harness.run_tests("prog")

        assert output.stdout.getvalue().count("# RAND SEED 5") == 1

    def test_capacity_from_config(self, output):
        """Test that the registry capacity comes from configuration."""
        harness = make_harness(output, capacity=1)
        harness.add_test("a", lambda: True)

        with pytest.raises(RegistryFullError):
            harness.add_test("b", lambda: True)
