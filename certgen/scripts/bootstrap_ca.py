#!/usr/bin/env python3
"""Bootstrap a self-signed signing CA for local certificate generation."""

import argparse
import sys
from pathlib import Path

from certgen.lib.cert_utils import (
    describe_certificate,
    generate_private_key,
    serialize_certificate,
    serialize_private_key,
)
from certgen.lib.certificate_builder import CertificateBuilder
from certgen.lib.logging_config import LOGGER


def bootstrap_ca(
    output_dir: Path,
    common_name: str,
    organization: str | None = None,
    key_size: int = 2048,
    validity_days: int = 365,
) -> tuple[Path, Path]:
    """Write ca.key and ca.pem to output_dir.

    Returns:
        Tuple of (key_path, cert_path)
    """
    subject = {"CN": common_name}
    if organization:
        subject["O"] = organization

    key = generate_private_key(key_size)
    cert = CertificateBuilder.build_signing_ca(
        subject=subject,
        private_key=key,
        validity_days=validity_days,
    )

    output_dir.mkdir(parents=True, exist_ok=True)
    key_path = output_dir / "ca.key"
    cert_path = output_dir / "ca.pem"
    key_path.write_bytes(serialize_private_key(key))
    key_path.chmod(0o600)
    cert_path.write_bytes(serialize_certificate(cert))

    LOGGER.info("Signing CA created:")
    LOGGER.info("  Key: %s", key_path)
    LOGGER.info("  Cert: %s", cert_path)
    LOGGER.info("  Serial: %s", describe_certificate(cert)["serialNumber"])
    return key_path, cert_path


def main() -> int:
    """Bootstrap signing CA.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Bootstrap a self-signed signing CA")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("certgen-ca"),
        help="Output directory for ca.key and ca.pem (default: certgen-ca)",
    )
    parser.add_argument("--common-name", default="certgen Signing CA", help="CA common name")
    parser.add_argument("--organization", default=None, help="CA organization")
    parser.add_argument("--key-size", type=int, default=2048, help="CA key size (default: 2048)")
    parser.add_argument("--days", type=int, default=365, help="CA validity in days (default: 365)")
    args = parser.parse_args()

    try:
        bootstrap_ca(
            output_dir=args.output_dir,
            common_name=args.common_name,
            organization=args.organization,
            key_size=args.key_size,
            validity_days=args.days,
        )
        LOGGER.info("Bootstrap complete. Next: run generate_cert.py --ca-key/--ca-cert")
        return 0

    except Exception as e:
        LOGGER.error("Bootstrap failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
