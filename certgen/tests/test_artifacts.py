"""Tests for ArtifactRegistry."""

import os
import subprocess
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from certgen.lib.artifacts import ArtifactRegistry
from certgen.lib.config import EphemeralFileSpec
from certgen.lib.errors import ArtifactIOError

REPO_ROOT = Path(__file__).resolve().parents[2]

CHILD_SCRIPT = """
import sys
from pathlib import Path

from certgen.lib.artifacts import ArtifactRegistry
from certgen.lib.config import EphemeralFileSpec

registry = ArtifactRegistry(tmp_dir=Path(sys.argv[1]))
registry.allocate(EphemeralFileSpec(prefix="t1-", postfix=".pem"))
registry.allocate(EphemeralFileSpec(prefix="t1-csr-", postfix=".pem"))
registry.allocate(EphemeralFileSpec(prefix="t1-cert-", postfix=".pem", keep=True))
print(len(list(Path(sys.argv[1]).iterdir())))
"""


class TestAllocate:
    """Tests for ArtifactRegistry.allocate."""

    def test_creates_empty_file_with_prefix_and_postfix(self, artifact_dir: Path) -> None:
        """Allocated file exists, is empty and carries prefix and postfix."""
        registry = ArtifactRegistry(tmp_dir=artifact_dir)
        path = registry.allocate(EphemeralFileSpec(prefix="t1-csr-", postfix=".pem"))

        assert path.parent == artifact_dir
        assert path.name.startswith("t1-csr-")
        assert path.name.endswith(".pem")
        assert path.read_bytes() == b""

    def test_names_are_unique(self, artifact_dir: Path) -> None:
        """Repeated allocations with the same spec do not collide."""
        registry = ArtifactRegistry(tmp_dir=artifact_dir)
        spec = EphemeralFileSpec(prefix="t1-", postfix=".pem")
        paths = {registry.allocate(spec) for _ in range(10)}
        assert len(paths) == 10

    def test_records_artifacts_in_order(self, artifact_dir: Path) -> None:
        """artifacts lists allocations in order with their keep flags."""
        registry = ArtifactRegistry(tmp_dir=artifact_dir)
        first = registry.allocate(EphemeralFileSpec(prefix="a-", postfix=".pem", keep=True))
        second = registry.allocate(EphemeralFileSpec(prefix="b-", postfix=".cfg"))

        assert [(a.path, a.keep) for a in registry.artifacts] == [(first, True), (second, False)]

    def test_missing_directory_raises(self, tmp_path: Path) -> None:
        """Allocation failure raises ArtifactIOError and records nothing."""
        registry = ArtifactRegistry(tmp_dir=tmp_path / "does-not-exist")

        with pytest.raises(ArtifactIOError):
            registry.allocate(EphemeralFileSpec(prefix="t1-", postfix=".pem"))
        assert registry.artifacts == ()


class TestCleanup:
    """Tests for ArtifactRegistry.cleanup and lifecycle hooks."""

    def test_removes_only_non_kept(self, artifact_dir: Path) -> None:
        """cleanup deletes non-kept artifacts and leaves kept ones."""
        registry = ArtifactRegistry(tmp_dir=artifact_dir)
        kept = registry.allocate(EphemeralFileSpec(prefix="k-", postfix=".pem", keep=True))
        dropped = registry.allocate(EphemeralFileSpec(prefix="d-", postfix=".pem"))

        removed = registry.cleanup()

        assert removed == [dropped]
        assert kept.exists()
        assert not dropped.exists()
        assert [a.path for a in registry.artifacts] == [kept]

    def test_is_idempotent(self, artifact_dir: Path) -> None:
        """A second cleanup removes nothing."""
        registry = ArtifactRegistry(tmp_dir=artifact_dir)
        registry.allocate(EphemeralFileSpec(prefix="d-", postfix=".pem"))

        registry.cleanup()
        assert registry.cleanup() == []

    def test_ignores_already_deleted_files(self, artifact_dir: Path) -> None:
        """Artifacts removed by someone else do not break cleanup."""
        registry = ArtifactRegistry(tmp_dir=artifact_dir)
        path = registry.allocate(EphemeralFileSpec(prefix="d-", postfix=".pem"))
        path.unlink()

        assert registry.cleanup() == []
        assert registry.artifacts == ()

    def test_continues_after_delete_failure(self, artifact_dir: Path) -> None:
        """A failing unlink is logged and cleanup moves on to the next artifact."""
        registry = ArtifactRegistry(tmp_dir=artifact_dir)
        registry.allocate(EphemeralFileSpec(prefix="a-", postfix=".pem"))
        registry.allocate(EphemeralFileSpec(prefix="b-", postfix=".pem"))

        with patch.object(Path, "unlink", side_effect=[PermissionError("denied"), None]):
            removed = registry.cleanup()

        assert len(removed) == 1

    def test_context_manager_cleans_up_on_exception(self, artifact_dir: Path) -> None:
        """Leaving the with block through an exception still deletes artifacts."""
        with pytest.raises(RuntimeError), ArtifactRegistry(tmp_dir=artifact_dir) as registry:
            path = registry.allocate(EphemeralFileSpec(prefix="d-", postfix=".pem"))
            raise RuntimeError("boom")

        assert not path.exists()

    def test_register_atexit_registers_once(self, artifact_dir: Path) -> None:
        """register_atexit hooks cleanup into interpreter exit exactly once."""
        registry = ArtifactRegistry(tmp_dir=artifact_dir)

        with patch("certgen.lib.artifacts.atexit.register") as mock_register:
            assert registry.register_atexit() is registry
            registry.register_atexit()

        mock_register.assert_called_once_with(registry.cleanup)

    def test_non_kept_allocation_hooks_exit_cleanup(self, artifact_dir: Path) -> None:
        """The first non-kept allocation registers cleanup for interpreter exit."""
        registry = ArtifactRegistry(tmp_dir=artifact_dir)

        with (
            patch("certgen.lib.artifacts.atexit.register") as mock_register,
            patch("certgen.lib.artifacts.atexit.unregister"),
        ):
            registry.allocate(EphemeralFileSpec(prefix="k-", postfix=".pem", keep=True))
            mock_register.assert_not_called()

            registry.allocate(EphemeralFileSpec(prefix="a-", postfix=".pem"))
            registry.allocate(EphemeralFileSpec(prefix="b-", postfix=".pem"))
            mock_register.assert_called_once_with(registry.cleanup)

    def test_cleanup_removes_exit_hook(self, artifact_dir: Path) -> None:
        """After cleanup nothing is left to delete, so the exit hook is dropped."""
        registry = ArtifactRegistry(tmp_dir=artifact_dir)

        with (
            patch("certgen.lib.artifacts.atexit.register"),
            patch("certgen.lib.artifacts.atexit.unregister") as mock_unregister,
        ):
            registry.allocate(EphemeralFileSpec(prefix="a-", postfix=".pem"))
            registry.cleanup()
            registry.cleanup()

        mock_unregister.assert_called_once_with(registry.cleanup)

    def test_process_exit_removes_non_kept_artifacts(self, artifact_dir: Path) -> None:
        """Artifacts of a plain registry are gone once the owning process exits."""
        pythonpath = os.pathsep.join([str(REPO_ROOT), os.environ.get("PYTHONPATH", "")])
        env = {**os.environ, "PYTHONPATH": pythonpath}
        process = subprocess.run(
            [sys.executable, "-c", CHILD_SCRIPT, str(artifact_dir)],
            capture_output=True,
            text=True,
            check=True,
            env=env,
            timeout=60,
        )

        assert process.stdout.strip() == "3"
        remaining = [p.name for p in artifact_dir.iterdir()]
        assert len(remaining) == 1
        assert remaining[0].startswith("t1-cert-")


class TestAllocateDirectory:
    """Tests for the per-call directory override."""

    def test_tmp_dir_argument_overrides_registry_default(
        self, artifact_dir: Path, tmp_path: Path
    ) -> None:
        """allocate(spec, tmp_dir) places the file in tmp_dir."""
        other = tmp_path / "other"
        other.mkdir()
        registry = ArtifactRegistry(tmp_dir=artifact_dir)

        path = registry.allocate(EphemeralFileSpec(prefix="t1-", postfix=".pem"), other)

        assert path.parent == other
        registry.cleanup()
