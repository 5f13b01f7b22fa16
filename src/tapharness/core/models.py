"""Data models for recorded verdicts."""

from dataclasses import dataclass
from enum import Enum


class TestStatus(str, Enum):
    """Outcome of a test entry."""

    PASSED = "passed"
    FAILED = "failed"

    @classmethod
    def from_success(cls, success: bool) -> "TestStatus":
        return cls.PASSED if success else cls.FAILED

    @property
    def tap(self) -> str:
        """The TAP verdict keyword."""
        return "ok" if self is TestStatus.PASSED else "not ok"


@dataclass
class Verdict:
    """The reported outcome of one top-level entry."""

    seq: int
    name: str
    status: TestStatus = TestStatus.PASSED
    subcases: int = 0
    failed_subcases: int = 0

    @property
    def passed(self) -> bool:
        return self.status == TestStatus.PASSED

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "seq": self.seq,
            "name": self.name,
            "status": self.status.value,
            "subcases": self.subcases,
            "failed_subcases": self.failed_subcases,
        }
