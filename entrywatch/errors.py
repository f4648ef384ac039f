"""Base exception types shared across the harness."""

from __future__ import annotations


class EntrywatchError(Exception):
    """Base exception for all entrywatch errors.

    This provides a single catch point for the CLI, which reports any
    scenario failure and exits non-zero.
    """


class ExecutableNotFoundError(EntrywatchError):
    """Required CLI tool is not installed."""

    @classmethod
    def missing(cls, name: str) -> ExecutableNotFoundError:
        """Return an error naming the executable absent from ``PATH``."""
        return cls(f"Required executable '{name}' not found in PATH")


class HarnessConfigError(EntrywatchError):
    """Raised when harness configuration read from the environment is invalid."""

    @classmethod
    def invalid_integer(cls, env_var: str, raw: str) -> HarnessConfigError:
        """Return an error for a non-integer or non-positive value."""
        return cls(f"{env_var} must be a positive integer, got: {raw!r}")

    @classmethod
    def invalid_boolean(cls, env_var: str, raw: str) -> HarnessConfigError:
        """Return an error for an unrecognised boolean spelling."""
        return cls(f"{env_var} must be one of true/false/1/0/yes/no, got: {raw!r}")

    @classmethod
    def unknown_case(cls, name: str, known: list[str]) -> HarnessConfigError:
        """Return an error for a scenario case name that does not exist."""
        options = ", ".join(f"'{k}'" for k in known)
        return cls(f"Unknown scenario case '{name}'. Valid options are: {options}")
