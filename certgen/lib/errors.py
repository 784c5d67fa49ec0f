"""Exceptions raised by the certificate generation pipeline."""

from collections.abc import Sequence


class CertgenError(Exception):
    """Base class for certificate generation failures."""


class ArtifactIOError(CertgenError):
    """Ephemeral artifact could not be allocated, written or read."""


class ExternalToolError(CertgenError):
    """Crypto toolkit invocation failed or could not be launched.

    Attributes:
        command: Argument vector that was executed
        returncode: Process exit status, None if the process never ran to completion
        stderr: Diagnostic output captured from the tool, empty if unavailable
    """

    def __init__(
        self,
        message: str,
        command: Sequence[str],
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        if stderr:
            message = f"{message}: {stderr.strip()}"
        super().__init__(message)
