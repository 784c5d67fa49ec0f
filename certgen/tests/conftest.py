"""Test fixtures for certgen tests."""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from certgen.lib.artifacts import ArtifactRegistry
from certgen.lib.cert_utils import (
    generate_private_key,
    serialize_certificate,
    serialize_private_key,
)
from certgen.lib.certificate_builder import CertificateBuilder
from certgen.lib.config import CertgenConfig
from certgen.lib.openssl import OpenSSLToolkit


@pytest.fixture
def artifact_dir(tmp_path: Path) -> Path:
    """Return empty directory that receives pipeline artifacts."""
    path = tmp_path / "artifacts"
    path.mkdir()
    return path


@pytest.fixture
def registry(artifact_dir: Path) -> Iterator[ArtifactRegistry]:
    """Yield registry allocating into artifact_dir, cleaned up after the test."""
    with ArtifactRegistry(tmp_dir=artifact_dir) as reg:
        yield reg


@pytest.fixture
def certgen_config(artifact_dir: Path) -> CertgenConfig:
    """Return config using the default key size and a bounded command timeout."""
    return CertgenConfig(tmp_dir=artifact_dir, command_timeout=60)


@pytest.fixture
def subject() -> dict[str, str | list[str]]:
    """Return subject attributes with a multi-valued OU."""
    return {
        "C": "US",
        "ST": "CA",
        "O": "Acme",
        "OU": ["Eng", "Legacy"],
        "CN": "acme.test",
    }


@pytest.fixture(scope="session")
def ca_key() -> RSAPrivateKey:
    """Generate RSA private key for the signing CA."""
    return generate_private_key(key_size=2048)


@pytest.fixture(scope="session")
def ca_cert(ca_key: RSAPrivateKey) -> x509.Certificate:
    """Generate self-signed signing CA certificate."""
    return CertificateBuilder.build_signing_ca(
        subject={"C": "GB", "O": "Test Org", "CN": "Test Signing CA"},
        private_key=ca_key,
        validity_days=30,
    )


@pytest.fixture
def ca_files_on_disk(
    tmp_path: Path,
    ca_key: RSAPrivateKey,
    ca_cert: x509.Certificate,
) -> tuple[Path, Path]:
    """Write CA key and certificate to disk.

    Creates:
        {tmp_path}/ca/ca.key
        {tmp_path}/ca/ca.pem
    """
    ca_dir = tmp_path / "ca"
    ca_dir.mkdir()
    key_path = ca_dir / "ca.key"
    cert_path = ca_dir / "ca.pem"
    key_path.write_bytes(serialize_private_key(ca_key))
    cert_path.write_bytes(serialize_certificate(ca_cert))
    return key_path, cert_path


@pytest.fixture
def mock_toolkit() -> MagicMock:
    """Return toolkit double whose operations write placeholder PEM files."""
    toolkit = MagicMock(spec=OpenSSLToolkit)
    toolkit.genrsa.side_effect = lambda out, bits: out.write_bytes(b"KEY")
    toolkit.req_new.side_effect = lambda key, cfg, out: out.write_bytes(b"CSR")
    toolkit.x509_sign.side_effect = lambda csr, ca_key, ca_cert, out, **kw: out.write_bytes(
        b"CERT"
    )
    return toolkit
