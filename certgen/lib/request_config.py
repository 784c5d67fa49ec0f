"""Certificate request configuration rendering for `openssl req`."""

from pathlib import Path

from certgen.lib.artifacts import ArtifactRegistry
from certgen.lib.config import (
    DEFAULT_KEY_SIZE,
    DEFAULT_KEYFILE,
    CertgenConfig,
    EphemeralFileSpec,
    SubjectAttributes,
    normalize_subject,
)
from certgen.lib.errors import ArtifactIOError

DN_SECTION = "req_distinguished_name"


def render_request_config(
    attrs: SubjectAttributes,
    key_size: int = DEFAULT_KEY_SIZE,
    default_keyfile: str = DEFAULT_KEYFILE,
) -> str:
    """Render the request config document for the given subject.

    The [ req ] preamble sets key size, default key file, the DN section and
    disables prompting. Each recognised subject attribute adds one
    `KEY = value` line to the DN section.
    """
    lines = [
        "[ req ]",
        f"default_bits           = {key_size}",
        f"default_keyfile        = {default_keyfile}",
        f"distinguished_name     = {DN_SECTION}",
        "prompt                 = no",
        "",
        f"[ {DN_SECTION} ]",
    ]
    lines.extend(f"{key} = {value}" for key, value in normalize_subject(attrs))
    return "\n".join(lines) + "\n"


def write_config(
    registry: ArtifactRegistry,
    spec: EphemeralFileSpec,
    attrs: SubjectAttributes,
    config: CertgenConfig | None = None,
) -> Path:
    """Write the request config for attrs into a new ephemeral artifact.

    Args:
        registry: Registry that owns the artifact
        spec: Naming and lifetime of the artifact
        attrs: Subject distinguished-name attributes
        config: Key settings for the preamble (default: CertgenConfig())

    Returns:
        Path of the written config file

    Raises:
        ArtifactIOError: If the artifact cannot be allocated or written
    """
    config = config or CertgenConfig()
    document = render_request_config(
        attrs,
        key_size=config.key_size,
        default_keyfile=config.default_keyfile,
    )
    path = registry.allocate(spec, config.tmp_dir)
    try:
        path.write_text(document, encoding="utf-8")
    except OSError as e:
        raise ArtifactIOError(f"failed to write request config {path}: {e}") from e
    return path
