"""Registration of test entries."""

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, Union

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1024


class HarnessError(Exception):
    """Base class for harness errors."""

    pass


class RegistryFullError(HarnessError):
    """Raised when registering beyond the registry capacity."""

    pass


@dataclass(frozen=True)
class SimpleTest:
    """A single test function taking no arguments."""

    name: str
    fn: Callable[[], object]

    @property
    def num_cases(self) -> int:
        return 1


@dataclass(frozen=True)
class ParameterizedTest:
    """A group of ``num`` sub-cases run through ``fn(idx)``."""

    name: str
    fn: Callable[[int], object]
    num: int
    subtest: bool = False

    @property
    def num_cases(self) -> int:
        return self.num


TestEntry = Union[SimpleTest, ParameterizedTest]


class Registry:
    """Append-only, capacity-bounded table of test entries."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self.capacity = capacity
        self._entries: list[TestEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TestEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> TestEntry:
        return self._entries[index]

    @property
    def num_test_cases(self) -> int:
        """Total number of cases across all entries."""
        return sum(entry.num_cases for entry in self._entries)

    def add_test(self, name: str, fn: Callable[[], object]) -> SimpleTest:
        """Register a single test."""
        return self._append(SimpleTest(name=name, fn=fn))

    def add_all_tests(
        self,
        name: str,
        fn: Callable[[int], object],
        num: int,
        subtest: bool = False,
    ) -> ParameterizedTest:
        """Register a parameterized test run once per index in ``range(num)``.

        Args:
            name: Label used in the group verdict and subtest header
            fn: Callable receiving the sub-case index
            num: Number of sub-cases, at least 1
            subtest: Report every sub-case as a nested TAP subtest

        Raises:
            ValueError: If num is less than 1
            RegistryFullError: If the registry is at capacity
        """
        if num < 1:
            raise ValueError(f"Parameterized test {name!r} needs at least one case, got {num}")
        return self._append(ParameterizedTest(name=name, fn=fn, num=num, subtest=subtest))

    def _append(self, entry: TestEntry) -> TestEntry:
        if len(self._entries) >= self.capacity:
            raise RegistryFullError(
                f"Cannot register {entry.name!r}: registry holds {self.capacity} tests"
            )
        self._entries.append(entry)
        logger.debug("Registered %s #%d: %s", type(entry).__name__, len(self._entries), entry.name)
        return entry
