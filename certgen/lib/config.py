"""Certificate generation configuration dataclasses."""

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from pathlib import Path

DEFAULT_KEY_SIZE = 1024
DEFAULT_KEYFILE = "keyfile.pem"

# Subject fields accepted in the request config, in canonical order
ALLOWED_DN_KEYS = ("C", "ST", "L", "O", "OU", "CN")

SubjectAttributes = Mapping[str, str | Sequence[str]]


@dataclass
class CertgenConfig:
    """Toolkit and key settings shared by every pipeline stage."""

    openssl_bin: str = "openssl"
    key_size: int = DEFAULT_KEY_SIZE
    default_keyfile: str = DEFAULT_KEYFILE
    tmp_dir: Path | None = None
    cert_validity_days: int | None = None
    command_timeout: float | None = None

    @classmethod
    def from_env(cls) -> "CertgenConfig":
        """Build configuration from CERTGEN_* environment variables.

        Unset variables fall back to the dataclass defaults.

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        config = cls()
        if openssl_bin := os.environ.get("CERTGEN_OPENSSL_BIN"):
            config.openssl_bin = openssl_bin
        if key_size := os.environ.get("CERTGEN_KEY_SIZE"):
            config.key_size = int(key_size)
        if tmp_dir := os.environ.get("CERTGEN_TMP_DIR"):
            config.tmp_dir = Path(tmp_dir)
        if cert_days := os.environ.get("CERTGEN_CERT_DAYS"):
            config.cert_validity_days = int(cert_days)
        if timeout := os.environ.get("CERTGEN_COMMAND_TIMEOUT"):
            config.command_timeout = float(timeout)
        return config


@dataclass(frozen=True)
class EphemeralFileSpec:
    """Naming and lifetime of one ephemeral artifact.

    keep=False schedules the file for deletion when its registry is cleaned up.
    """

    prefix: str
    postfix: str
    keep: bool = False

    def with_(self, **changes: str) -> "EphemeralFileSpec":
        """Return a copy with the given prefix and/or postfix replaced."""
        return replace(self, **changes)


def normalize_subject(attrs: SubjectAttributes) -> list[tuple[str, str]]:
    """Reduce subject attributes to the (key, value) lines of the request config.

    Keys outside ALLOWED_DN_KEYS are dropped. Sequence values contribute only
    their first element; an empty sequence drops the key. Input order is kept.
    """
    fields: list[tuple[str, str]] = []
    for key, value in attrs.items():
        if key not in ALLOWED_DN_KEYS:
            continue
        if isinstance(value, str):
            fields.append((key, value))
        elif isinstance(value, Sequence):
            if value:
                fields.append((key, str(value[0])))
        else:
            fields.append((key, str(value)))
    return fields
