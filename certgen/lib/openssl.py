"""OpenSSL command line invocation for key, request and certificate operations."""

import logging
import subprocess
from pathlib import Path

from certgen.lib.config import DEFAULT_KEY_SIZE, CertgenConfig
from certgen.lib.errors import ExternalToolError

logger = logging.getLogger(__name__)


class OpenSSLToolkit:
    """Runs openssl subcommands as argument vectors (never through a shell)."""

    def __init__(self, openssl_bin: str = "openssl", timeout: float | None = None) -> None:
        """Initialize toolkit.

        Args:
            openssl_bin: Name or path of the openssl executable
            timeout: Seconds to wait for each command (None = no limit)
        """
        self.openssl_bin = openssl_bin
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: CertgenConfig) -> "OpenSSLToolkit":
        """Build toolkit from certgen configuration."""
        return cls(openssl_bin=config.openssl_bin, timeout=config.command_timeout)

    def run(self, *args: str) -> subprocess.CompletedProcess[str]:
        """Run openssl with the given arguments.

        stdin is closed so a config that turns prompting on fails instead of blocking.

        Returns:
            Completed process with captured stdout/stderr

        Raises:
            ExternalToolError: If openssl cannot be launched, times out or exits non-zero
        """
        command = [self.openssl_bin, *args]
        step = args[0] if args else self.openssl_bin
        logger.debug("Running: %s", " ".join(command))
        try:
            process = subprocess.run(
                command,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as e:
            raise ExternalToolError(
                f"{step} exited with status {e.returncode}",
                command,
                returncode=e.returncode,
                stderr=e.stderr or "",
            ) from e
        except subprocess.TimeoutExpired as e:
            stderr = e.stderr.decode(errors="replace") if isinstance(e.stderr, bytes) else e.stderr
            raise ExternalToolError(
                f"{step} timed out after {e.timeout}s",
                command,
                stderr=stderr or "",
            ) from e
        except OSError as e:
            raise ExternalToolError(f"failed to launch {self.openssl_bin}: {e}", command) from e

        if process.stderr:
            logger.debug(process.stderr)
        return process

    def genrsa(self, out_path: Path, bits: int = DEFAULT_KEY_SIZE) -> None:
        """Write a PEM-encoded RSA private key to out_path."""
        self.run("genrsa", "-out", str(out_path), str(bits))

    def req_new(self, key_path: Path, config_path: Path, out_path: Path) -> None:
        """Write a PEM-encoded CSR for key_path using the request config."""
        self.run(
            "req",
            "-new",
            "-key",
            str(key_path),
            "-config",
            str(config_path),
            "-out",
            str(out_path),
        )

    def x509_sign(
        self,
        csr_path: Path,
        ca_key_path: Path,
        ca_cert_path: Path,
        out_path: Path,
        create_serial: bool = True,
        days: int | None = None,
    ) -> None:
        """Sign csr_path with the CA key and certificate, writing the PEM cert to out_path.

        Args:
            csr_path: Certificate signing request to sign
            ca_key_path: Signer's private key
            ca_cert_path: Signer's certificate
            out_path: Destination of the signed certificate
            create_serial: Create the CA serial file if it does not exist yet
            days: Validity period (None = toolkit default)
        """
        args = [
            "x509",
            "-req",
            "-in",
            str(csr_path),
            "-CAkey",
            str(ca_key_path),
            "-CA",
            str(ca_cert_path),
            "-out",
            str(out_path),
        ]
        if create_serial:
            args.append("-CAcreateserial")
        if days is not None:
            args.extend(["-days", str(days)])
        self.run(*args)
