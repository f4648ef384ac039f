"""Errors raised by the kubectl and helm wrappers."""

from __future__ import annotations

import typing as typ

from entrywatch.errors import EntrywatchError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

# Fragment kubectl prints when creating an object that already exists.
ALREADY_EXISTS_MARKER = "(AlreadyExists)"


class ClusterCommandError(EntrywatchError):
    """Base exception for failed cluster command-line invocations.

    Attributes
    ----------
    args_run
        The argv that was executed.
    returncode
        Exit code of the command.
    stderr
        Captured standard error.

    """

    tool = "command"

    def __init__(
        self,
        message: str,
        *,
        args_run: tuple[str, ...] = (),
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        """Initialise with the failed command's details."""
        self.args_run = args_run
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)

    @classmethod
    def command_failed(
        cls, args: cabc.Sequence[str], returncode: int, stderr: str
    ) -> typ.Self:
        """Return an error for a command that exited non-zero."""
        detail = stderr.strip() or "no error output"
        msg = (
            f"{cls.tool} {' '.join(args[1:])} failed with exit code "
            f"{returncode}: {detail}"
        )
        return cls(msg, args_run=tuple(args), returncode=returncode, stderr=stderr)

    @classmethod
    def timed_out(cls, args: cabc.Sequence[str], timeout: float) -> typ.Self:
        """Return an error for a command that exceeded its timeout."""
        msg = f"{cls.tool} {' '.join(args[1:])} timed out after {timeout}s"
        return cls(msg, args_run=tuple(args))

    @property
    def already_exists(self) -> bool:
        """Return True when the failure is an "already exists" conflict."""
        return ALREADY_EXISTS_MARKER in self.stderr


class KubectlError(ClusterCommandError):
    """A kubectl invocation failed."""

    tool = "kubectl"


class HelmError(ClusterCommandError):
    """A helm invocation failed."""

    tool = "helm"


class SecretDecodeError(EntrywatchError):
    """Failed to decode a Kubernetes secret field."""
