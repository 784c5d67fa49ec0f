"""Ephemeral artifact registry for pipeline intermediates."""

import atexit
import logging
import os
import tempfile
from pathlib import Path
from types import TracebackType

from certgen.lib.config import EphemeralFileSpec
from certgen.lib.errors import ArtifactIOError
from certgen.lib.models import Artifact

logger = logging.getLogger(__name__)


class ArtifactRegistry:
    """Allocates ephemeral files and deletes the non-kept ones on cleanup.

    Each pipeline run is handed a registry explicitly. The first non-kept
    allocation hooks cleanup() into interpreter exit, so non-kept artifacts
    never outlive the process. Cleanup also happens when the registry is used
    as a context manager and the block exits, or when cleanup() is called.
    Kept artifacts are recorded but never deleted.
    """

    def __init__(self, tmp_dir: Path | None = None) -> None:
        """Initialize registry.

        Args:
            tmp_dir: Directory for new artifacts (default: system temp dir)
        """
        self.tmp_dir = tmp_dir
        self._artifacts: list[Artifact] = []
        self._atexit_registered = False

    @property
    def artifacts(self) -> tuple[Artifact, ...]:
        """Artifacts allocated so far, in allocation order."""
        return tuple(self._artifacts)

    def allocate(self, spec: EphemeralFileSpec, tmp_dir: Path | None = None) -> Path:
        """Create an empty uniquely named file and record it.

        The file name is spec.prefix + random part + spec.postfix.

        Args:
            spec: Naming and lifetime of the artifact
            tmp_dir: Directory for this artifact (default: the registry's tmp_dir)

        Returns:
            Path of the created file

        Raises:
            ArtifactIOError: If the file cannot be created
        """
        try:
            fd, name = tempfile.mkstemp(
                prefix=spec.prefix,
                suffix=spec.postfix,
                dir=tmp_dir or self.tmp_dir,
            )
            os.close(fd)
        except OSError as e:
            raise ArtifactIOError(f"failed to allocate artifact {spec.prefix}*{spec.postfix}: {e}") from e

        path = Path(name)
        self._artifacts.append(Artifact(path=path, keep=spec.keep))
        if not spec.keep:
            self.register_atexit()
        return path

    def cleanup(self) -> list[Path]:
        """Delete every non-kept artifact and forget it.

        Returns:
            Paths that were removed from disk
        """
        removed: list[Path] = []
        remaining: list[Artifact] = []
        for artifact in self._artifacts:
            if artifact.keep:
                remaining.append(artifact)
                continue
            try:
                artifact.path.unlink()
                removed.append(artifact.path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning("Failed to remove artifact %s: %s", artifact.path, e)
        self._artifacts = remaining
        if self._atexit_registered:
            atexit.unregister(self.cleanup)
            self._atexit_registered = False
        return removed

    def register_atexit(self) -> "ArtifactRegistry":
        """Run cleanup() when the interpreter exits. Safe to call repeatedly.

        allocate() calls this for non-kept artifacts; cleanup() removes the hook.
        """
        if not self._atexit_registered:
            atexit.register(self.cleanup)
            self._atexit_registered = True
        return self

    def __enter__(self) -> "ArtifactRegistry":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()
