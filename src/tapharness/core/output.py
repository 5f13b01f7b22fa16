"""TAP output streams and diagnostic state."""

import sys
from typing import Callable, Optional, TextIO

from tapharness.core.models import TestStatus


class OutputChannel:
    """Writes indented TAP lines to a stdout-like and a stderr-like stream."""

    def __init__(self, stdout: Optional[TextIO] = None, stderr: Optional[TextIO] = None):
        self.stdout = stdout if stdout is not None else sys.stdout
        self.stderr = stderr if stderr is not None else sys.stderr

    def print_stdout(self, indent: int, text: str) -> None:
        self.stdout.write(f"{' ' * indent}{text}\n")

    def print_stderr(self, indent: int, text: str) -> None:
        self.stderr.write(f"{' ' * indent}{text}\n")

    def plan(self, indent: int, count: int) -> None:
        self.print_stdout(indent, f"1..{count}")

    def skip_plan(self, indent: int, program_name: str) -> None:
        self.print_stdout(indent, f"1..0 # Skipped: {program_name}")

    def subtest(self, indent: int, name: str) -> None:
        self.print_stdout(indent, f"# Subtest: {name}")

    def verdict(self, indent: int, success: bool, seq: int, title: str) -> None:
        status = TestStatus.from_success(success)
        self.print_stdout(indent, f"{status.tap} {seq} - {title}")

    def comment(self, indent: int, text: str) -> None:
        self.print_stdout(indent, f"# {text}")

    def diagnostic(self, indent: int, text: str) -> None:
        """Write a diagnostic to stderr, one TAP comment per line."""
        for line in text.splitlines() or [""]:
            self.print_stderr(indent, f"# {line}")

    def flush_stdout(self) -> None:
        self.stdout.flush()

    def flush_stderr(self) -> None:
        self.stderr.flush()

    def flush(self) -> None:
        self.flush_stdout()
        self.flush_stderr()

    def close(self) -> None:
        """Flush both streams. The streams stay open, they belong to the caller."""
        self.flush()


class DiagnosticQueue:
    """Error state accumulated by the running test.

    Tests push messages while they run; the runner clears the queue after a
    passing test and drains it through the error callback after a failing one.
    """

    def __init__(self):
        self._messages: list[str] = []

    def __len__(self) -> int:
        return len(self._messages)

    def push(self, message: str) -> None:
        self._messages.append(message)

    def clear(self) -> None:
        self._messages.clear()

    def drain(self, callback: Callable[[str], None]) -> int:
        """Pass every queued message to ``callback`` oldest first and empty the queue."""
        messages, self._messages = self._messages, []
        for message in messages:
            callback(message)
        return len(messages)
