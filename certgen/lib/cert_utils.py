"""Certificate utility functions for PEM serialization and certificate inspection."""

import uuid

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509.oid import NameOID


def generate_private_key(key_size: int = 2048) -> RSAPrivateKey:
    """Generate RSA private key with specified size."""
    return rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )


def serialize_private_key(key: RSAPrivateKey) -> bytes:
    """Serialize private key to PEM format (PKCS8, no encryption)."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def deserialize_private_key(pem_data: bytes) -> RSAPrivateKey:
    """Deserialize private key from PEM bytes."""
    key = serialization.load_pem_private_key(pem_data, password=None)
    if not isinstance(key, RSAPrivateKey):
        raise ValueError("expected RSA private key")
    return key


def serialize_certificate(cert: x509.Certificate) -> bytes:
    """Serialize certificate to PEM format."""
    return cert.public_bytes(serialization.Encoding.PEM)


def deserialize_certificate(pem_data: bytes) -> x509.Certificate:
    """Deserialize certificate from PEM bytes."""
    return x509.load_pem_x509_certificate(pem_data)


def generate_serial_number() -> int:
    """Generate certificate serial number from UUID4 (128-bit, ~122 bits random)."""
    return uuid.uuid4().int


def get_certificate_serial_hex(cert: x509.Certificate) -> str:
    """Return certificate serial number as hex with colons (e.g., 3A:F2:B1:...)."""
    serial_hex = f"{cert.serial_number:X}"
    if len(serial_hex) % 2 != 0:
        serial_hex = "0" + serial_hex
    return ":".join(serial_hex[i : i + 2] for i in range(0, len(serial_hex), 2))


def get_subject_attribute(name: x509.Name, oid: x509.ObjectIdentifier) -> str | None:
    """Return the first value of oid in name, or None if absent."""
    attributes = name.get_attributes_for_oid(oid)
    if not attributes:
        return None
    value = attributes[0].value
    if not isinstance(value, str):
        raise ValueError(f"{oid.dotted_string} must be string")
    return value


def describe_certificate(cert: x509.Certificate) -> dict[str, str | None]:
    """Summarize an issued certificate for logging.

    Returns:
        Dict with subject and issuer CN, colon-separated serial and validity bounds
    """
    return {
        "subject": get_subject_attribute(cert.subject, NameOID.COMMON_NAME),
        "issuer": get_subject_attribute(cert.issuer, NameOID.COMMON_NAME),
        "serialNumber": get_certificate_serial_hex(cert),
        "notBefore": cert.not_valid_before_utc.isoformat(),
        "expiry": cert.not_valid_after_utc.isoformat(),
    }
