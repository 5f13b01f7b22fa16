"""Configuration management for tapharness."""

import json
import os
import time
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

LEVEL_ENV = "HARNESS_TAP_LEVEL"
SEED_ENV = "HARNESS_TEST_RAND_ORDER"

# Spaces added per TAP nesting level
INDENT_STEP = 4


class HarnessConfig(BaseModel):
    """Settings supplied to a harness at setup time."""

    level: int = Field(default=0, description="TAP nesting depth of the test program")
    seed: Optional[int] = Field(
        default=None,
        description="Random order seed (unset disables shuffling, <= 0 picks one from the clock)",
    )
    capacity: int = Field(default=1024, description="Maximum number of registered tests")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Level cannot be negative")
        return v

    @field_validator("capacity")
    @classmethod
    def validate_capacity(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Capacity must be at least 1")
        return v

    @property
    def base_indent(self) -> int:
        """Indentation of the outermost plan and verdict lines."""
        return INDENT_STEP * self.level

    def resolve_seed(self) -> int:
        """Return the effective seed, 0 meaning registration order."""
        if self.seed is None:
            return 0
        if self.seed <= 0:
            return int(time.time())
        return self.seed

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> "HarnessConfig":
        """Build configuration from the harness environment variables."""
        if environ is None:
            environ = os.environ

        data = {}
        level = environ.get(LEVEL_ENV)
        if level is not None and level.strip():
            data["level"] = level.strip()

        # An empty value still turns randomization on, with a clock seed
        seed = environ.get(SEED_ENV)
        if seed is not None:
            data["seed"] = seed.strip() or 0

        return cls.model_validate(data)

    @classmethod
    def from_file(cls, path: Path | str) -> "HarnessConfig":
        """Load configuration from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r") as f:
            data = json.load(f)

        return cls.model_validate(data)

    def to_file(self, path: Path | str) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)

    def with_file(self, path: Path | str) -> "HarnessConfig":
        """Return a copy with the settings present in a JSON file applied."""
        loaded = self.from_file(path)
        return self.model_validate({**self.model_dump(), **loaded.model_dump(exclude_unset=True)})

    def merged(self, **overrides) -> "HarnessConfig":
        """Return a copy with every non-None override applied."""
        updates = {k: v for k, v in overrides.items() if v is not None}
        if not updates:
            return self
        return self.model_validate({**self.model_dump(), **updates})


def get_default_config() -> HarnessConfig:
    """Return a default configuration."""
    return HarnessConfig()


def create_example_config(output_path: Path | str) -> Path:
    """Create an example configuration file."""
    output_path = Path(output_path)
    config = HarnessConfig(level=0, seed=None, capacity=1024)
    config.to_file(output_path)
    return output_path
