"""Result models for certificate generation."""

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Artifact:
    """Ephemeral file recorded by an ArtifactRegistry."""

    path: Path
    keep: bool


@dataclass
class CertPaths:
    """Result from the pipeline: locations of the issued key and certificate.

    Unpacks as a (key_path, cert_path) pair.
    """

    key_path: Path
    cert_path: Path

    def __iter__(self) -> Iterator[Path]:
        yield self.key_path
        yield self.cert_path


@dataclass
class CertBuffers:
    """Result from the buffer variant: PEM contents of the key and certificate.

    Unpacks as a (key_pem, cert_pem) pair.
    """

    key_pem: bytes
    cert_pem: bytes

    def __iter__(self) -> Iterator[bytes]:
        yield self.key_pem
        yield self.cert_pem
