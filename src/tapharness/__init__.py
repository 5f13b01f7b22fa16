"""
tapharness - a small TAP-emitting test harness.

This package provides tools to:
- Register plain and parameterized test functions
- Run them in registration order or in a seeded random order
- Report verdicts, nested subtests and an exit status as TAP
"""

__version__ = "0.1.0"
__author__ = "tapharness Team"
