#!/usr/bin/env python3
"""Issue a certificate for a subject, signed by an existing CA."""

import argparse
import sys
from pathlib import Path

from certgen.lib.artifacts import ArtifactRegistry
from certgen.lib.cert_generator import CertGenerator
from certgen.lib.cert_utils import deserialize_certificate, describe_certificate
from certgen.lib.config import ALLOWED_DN_KEYS, CertgenConfig
from certgen.lib.errors import CertgenError
from certgen.lib.logging_config import LOGGER, set_verbose


def parse_subject(values: list[str]) -> dict[str, list[str]]:
    """Parse repeated KEY=VALUE arguments into subject attributes.

    Repeated keys collect into a list; only the first one ends up in the
    certificate.

    Raises:
        ValueError: If an argument has no '='
    """
    subject: dict[str, list[str]] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep:
            raise ValueError(f"subject field must be KEY=VALUE: {item!r}")
        subject.setdefault(key.strip(), []).append(value.strip())
    return subject


def main() -> int:
    """Generate key and certificate and write them to the output directory.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Issue a CA-signed certificate")
    parser.add_argument(
        "--subject",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help=f"Subject field, repeatable (keys: {', '.join(ALLOWED_DN_KEYS)})",
    )
    parser.add_argument("--ca-key", type=Path, required=True, help="CA private key (PEM)")
    parser.add_argument("--ca-cert", type=Path, required=True, help="CA certificate (PEM)")
    parser.add_argument(
        "--prefix",
        default="certgen",
        help="Prefix for intermediate files and output names (default: certgen)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory for <prefix>.key and <prefix>.pem (default: current directory)",
    )
    parser.add_argument(
        "--keep",
        action="store_true",
        help="Keep intermediate files (key, config, CSR, cert) for inspection",
    )
    parser.add_argument("--verbose", action="store_true", help="Log openssl commands")
    args = parser.parse_args()

    set_verbose(args.verbose)

    try:
        subject = parse_subject(args.subject)
        config = CertgenConfig.from_env()

        with ArtifactRegistry(tmp_dir=config.tmp_dir) as registry:
            generator = CertGenerator(registry, config)
            LOGGER.info("Generating certificate for: %s", subject.get("CN", ["<no CN>"])[0])
            key_pem, cert_pem = generator.generate_cert_buf(
                args.prefix,
                args.keep,
                subject,
                args.ca_key,
                args.ca_cert,
            )
            if args.keep:
                for artifact in registry.artifacts:
                    LOGGER.info("  Kept: %s", artifact.path)

        args.output_dir.mkdir(parents=True, exist_ok=True)
        key_path = args.output_dir / f"{args.prefix}.key"
        cert_path = args.output_dir / f"{args.prefix}.pem"
        key_path.write_bytes(key_pem)
        key_path.chmod(0o600)
        cert_path.write_bytes(cert_pem)

        summary = describe_certificate(deserialize_certificate(cert_pem))
        LOGGER.info("Certificate created:")
        LOGGER.info("  Key: %s", key_path)
        LOGGER.info("  Cert: %s", cert_path)
        LOGGER.info("  Subject: %s", summary["subject"])
        LOGGER.info("  Issuer: %s", summary["issuer"])
        LOGGER.info("  Serial: %s", summary["serialNumber"])
        LOGGER.info("  Expiry: %s", summary["expiry"])
        return 0

    except CertgenError as e:
        LOGGER.error("Certificate generation failed: %s", e)
        return 1
    except (ValueError, OSError) as e:
        LOGGER.error("Invalid input: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
