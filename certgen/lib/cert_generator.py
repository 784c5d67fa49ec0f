"""Certificate generator: key, request, signing and the pipeline that chains them."""

import logging
from pathlib import Path

from certgen.lib.artifacts import ArtifactRegistry
from certgen.lib.config import CertgenConfig, EphemeralFileSpec, SubjectAttributes
from certgen.lib.errors import ArtifactIOError
from certgen.lib.models import CertBuffers, CertPaths
from certgen.lib.openssl import OpenSSLToolkit
from certgen.lib.request_config import write_config

logger = logging.getLogger(__name__)


class CertGenerator:
    """Issues CA-signed certificates through a chain of ephemeral artifacts.

    Stages run strictly in order (key, request config, CSR, certificate) and
    the first failing stage ends the run with its exception. Artifacts made by
    earlier stages are not rolled back; they stay on disk until the registry
    cleans up, or for good when keep_files is set.
    """

    def __init__(
        self,
        registry: ArtifactRegistry,
        config: CertgenConfig | None = None,
        toolkit: OpenSSLToolkit | None = None,
    ) -> None:
        """Initialize certificate generator.

        Args:
            registry: Registry that allocates and owns every artifact of the run
            config: Key size, toolkit and validity settings; tmp_dir, when set,
                takes precedence over the registry's directory
            toolkit: OpenSSL wrapper (default: built from config)
        """
        self.registry = registry
        self.config = config or CertgenConfig()
        self.toolkit = toolkit or OpenSSLToolkit.from_config(self.config)

    def write_config(self, spec: EphemeralFileSpec, attrs: SubjectAttributes) -> Path:
        """Write the request config for attrs. See request_config.write_config."""
        return write_config(self.registry, spec, attrs, self.config)

    def generate_key(self, spec: EphemeralFileSpec) -> Path:
        """Generate an RSA private key artifact.

        Raises:
            ArtifactIOError: If the artifact cannot be allocated
            ExternalToolError: If key generation fails
        """
        key_path = self.registry.allocate(spec, self.config.tmp_dir)
        self.toolkit.genrsa(key_path, self.config.key_size)
        return key_path

    def generate_csr(self, spec: EphemeralFileSpec, key_path: Path, config_path: Path) -> Path:
        """Generate a CSR artifact from an existing key and request config.

        Raises:
            ArtifactIOError: If the artifact cannot be allocated
            ExternalToolError: If CSR generation fails
        """
        csr_path = self.registry.allocate(spec, self.config.tmp_dir)
        self.toolkit.req_new(key_path, config_path, csr_path)
        return csr_path

    def sign_cert(
        self,
        spec: EphemeralFileSpec,
        csr_path: Path,
        ca_key_path: Path,
        ca_cert_path: Path,
    ) -> Path:
        """Sign a CSR with the CA key and certificate.

        The CA serial file is created next to the CA certificate on first use.

        Raises:
            ArtifactIOError: If the artifact cannot be allocated
            ExternalToolError: If signing fails (including missing CA files)
        """
        cert_path = self.registry.allocate(spec, self.config.tmp_dir)
        self.toolkit.x509_sign(
            csr_path,
            ca_key_path,
            ca_cert_path,
            cert_path,
            create_serial=True,
            days=self.config.cert_validity_days,
        )
        return cert_path

    def generate_cert(
        self,
        prefix: str,
        keep_files: bool,
        attrs: SubjectAttributes,
        ca_key_path: Path,
        ca_cert_path: Path,
    ) -> CertPaths:
        """Generate a key and a CA-signed certificate for the subject.

        Artifacts are named prefix-*.pem (key), prefix-*.cfg (request config),
        prefix-csr-*.pem and prefix-cert-*.pem. Concurrent runs need distinct
        prefixes.

        Args:
            prefix: File name prefix for every artifact of this run
            keep_files: Keep all artifacts when the registry cleans up
            attrs: Subject distinguished-name attributes
            ca_key_path: Signer's private key
            ca_cert_path: Signer's certificate

        Returns:
            CertPaths with the key and certificate locations

        Raises:
            ArtifactIOError: If an artifact cannot be allocated or written
            ExternalToolError: If an openssl stage fails
        """
        spec = EphemeralFileSpec(prefix=f"{prefix}-", postfix=".pem", keep=keep_files)
        key_path = self.generate_key(spec)

        spec = spec.with_(postfix=".cfg")
        config_path = self.write_config(spec, attrs)

        spec = spec.with_(prefix=f"{prefix}-csr-", postfix=".pem")
        csr_path = self.generate_csr(spec, key_path, config_path)

        spec = spec.with_(prefix=f"{prefix}-cert-")
        cert_path = self.sign_cert(spec, csr_path, ca_key_path, ca_cert_path)

        logger.info("Issued certificate %s (key %s)", cert_path, key_path)
        return CertPaths(key_path=key_path, cert_path=cert_path)

    def generate_cert_buf(
        self,
        prefix: str,
        keep_files: bool,
        attrs: SubjectAttributes,
        ca_key_path: Path,
        ca_cert_path: Path,
    ) -> CertBuffers:
        """Same as generate_cert, but return the PEM contents instead of paths.

        Raises:
            ArtifactIOError: If reading the issued key or certificate fails
            ExternalToolError: If an openssl stage fails
        """
        paths = self.generate_cert(prefix, keep_files, attrs, ca_key_path, ca_cert_path)
        cert_pem = _read_artifact(paths.cert_path)
        key_pem = _read_artifact(paths.key_path)
        return CertBuffers(key_pem=key_pem, cert_pem=cert_pem)


def _read_artifact(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise ArtifactIOError(f"failed to read artifact {path}: {e}") from e


def generate_cert(
    registry: ArtifactRegistry,
    prefix: str,
    keep_files: bool,
    attrs: SubjectAttributes,
    ca_key_path: Path,
    ca_cert_path: Path,
    config: CertgenConfig | None = None,
) -> CertPaths:
    """Generate a CA-signed certificate. See CertGenerator.generate_cert."""
    generator = CertGenerator(registry, config)
    return generator.generate_cert(prefix, keep_files, attrs, ca_key_path, ca_cert_path)


def generate_cert_buf(
    registry: ArtifactRegistry,
    prefix: str,
    keep_files: bool,
    attrs: SubjectAttributes,
    ca_key_path: Path,
    ca_cert_path: Path,
    config: CertgenConfig | None = None,
) -> CertBuffers:
    """Generate a CA-signed certificate as PEM bytes. See CertGenerator.generate_cert_buf."""
    generator = CertGenerator(registry, config)
    return generator.generate_cert_buf(prefix, keep_files, attrs, ca_key_path, ca_cert_path)
