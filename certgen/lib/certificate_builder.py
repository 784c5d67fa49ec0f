"""Certificate builder for the signing CA certificates are issued from."""

from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509.oid import NameOID

from .cert_utils import generate_serial_number
from .config import SubjectAttributes, normalize_subject

_DN_OIDS = {
    "C": NameOID.COUNTRY_NAME,
    "ST": NameOID.STATE_OR_PROVINCE_NAME,
    "L": NameOID.LOCALITY_NAME,
    "O": NameOID.ORGANIZATION_NAME,
    "OU": NameOID.ORGANIZATIONAL_UNIT_NAME,
    "CN": NameOID.COMMON_NAME,
}


def subject_to_x509_name(attrs: SubjectAttributes) -> x509.Name:
    """Convert subject attributes to a cryptography x509.Name.

    Applies the same filtering as the request config (recognised keys only,
    first element of sequence values).
    """
    return x509.Name(
        [x509.NameAttribute(_DN_OIDS[key], value) for key, value in normalize_subject(attrs)]
    )


class CertificateBuilder:
    """Builds the self-signed CA used to sign generated certificates."""

    @staticmethod
    def build_signing_ca(
        subject: SubjectAttributes,
        private_key: RSAPrivateKey,
        validity_days: int,
    ) -> x509.Certificate:
        """Build self-signed CA certificate.

        Args:
            subject: Distinguished-name attributes for subject and issuer
            private_key: RSA private key for signing
            validity_days: Certificate validity period in days

        Returns:
            Self-signed X.509 certificate with CA basic constraints
        """
        name = subject_to_x509_name(subject)
        not_before = datetime.now(timezone.utc)
        not_after = not_before + timedelta(days=validity_days)

        builder = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(private_key.public_key())
            .serial_number(generate_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=True, path_length=0),
                critical=True,
            )
        )

        return builder.sign(private_key, hashes.SHA256())
