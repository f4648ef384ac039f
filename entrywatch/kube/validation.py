"""Executable checks and small helpers used by the kubectl and helm wrappers.

Utilities
---------
- ``require_exe``: Verifies CLI tools (kubectl, helm) are available
- ``pick_free_loopback_port``: Allocates ephemeral ports for port-forwards
- ``b64decode_k8s_secret_field``: Decodes base64-encoded Kubernetes secret values

Examples
--------
Verify required executables before running a scenario:

    require_exe("kubectl")
    require_exe("helm")

"""

from __future__ import annotations

import base64
import shutil
import socket

from entrywatch.errors import ExecutableNotFoundError
from entrywatch.kube.errors import SecretDecodeError


def require_exe(name: str) -> None:
    """Verify a CLI tool is available in PATH.

    Raises
    ------
    ExecutableNotFoundError
        If the executable is not found in PATH.

    """
    if shutil.which(name) is None:
        raise ExecutableNotFoundError.missing(name)


def pick_free_loopback_port() -> int:
    """Find an available TCP port on 127.0.0.1.

    Binds to port 0 so the kernel assigns an ephemeral port.

    Notes
    -----
    Another process may claim the port between this call and kubectl binding
    it; port-forward startup failures surface as ``KubectlError``.

    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def b64decode_k8s_secret_field(b64_text: str) -> str:
    """Decode a base64-encoded Kubernetes secret value to UTF-8 text.

    Raises
    ------
    SecretDecodeError
        If the input is not valid base64 or not valid UTF-8.

    """
    try:
        return base64.b64decode(b64_text, validate=True).decode("utf-8")
    except (ValueError, UnicodeDecodeError) as e:
        msg = f"Failed to decode secret field: {e}"
        raise SecretDecodeError(msg) from e
