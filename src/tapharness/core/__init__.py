"""Core registration and execution functionality."""

from tapharness.core.harness import Harness
from tapharness.core.registry import Registry, RegistryFullError
from tapharness.core.runner import ExitStatus, TestRunner

__all__ = ["Harness", "Registry", "RegistryFullError", "ExitStatus", "TestRunner"]
