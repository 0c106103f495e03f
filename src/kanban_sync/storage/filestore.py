"""Status-directory layout and collision-safe relocation of record files.

The board root holds one subdirectory per status.  A record lives in
``<root>/<status>/<id>.md``; when its status changes the file is moved
with a single ``os.rename`` so a crash can never leave a duplicate or
lose the file.

Collision avoidance is a loop over candidate names (``name.md``,
``name-1.md``, ``name-2.md``, ...) with an existence check before the
rename.  A single sync pass at a time is the only writer, so there is
no locking.  A multi-process deployment would need a real lock around
``free_path`` and the rename.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from pathlib import Path

from kanban_sync.core.errors import FileSystemError
from kanban_sync.sync.models import DEFAULT_STATUSES

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".md"


def _with_suffix(filename: str) -> str:
    if filename.endswith(RECORD_SUFFIX):
        return filename
    return f"{filename}{RECORD_SUFFIX}"


class FileStore:
    """Map statuses to directories under *root* and move files between them.

    Args:
        root: Board root directory.
        statuses: Ordered status values; one directory each.
    """

    def __init__(
        self,
        root: Path,
        statuses: Sequence[str] = DEFAULT_STATUSES,
    ) -> None:
        self.root = Path(root).absolute()
        self.statuses = tuple(statuses)

    # ------------------------------------------------------------------
    # Pure path helpers
    # ------------------------------------------------------------------

    def location_for(self, status: str, filename: str) -> Path:
        """Return ``<root>/<status>/<filename>.md``.

        Raises:
            ValueError: If *status* is not a configured status.
        """
        if status not in self.statuses:
            raise ValueError(
                f"Unknown status '{status}'. Valid statuses: {list(self.statuses)}"
            )
        return self.root / status / _with_suffix(filename)

    def status_from_path(self, path: Path) -> str | None:
        """Return the status directory *path* sits directly in, if any."""
        try:
            relative = Path(path).absolute().relative_to(self.root)
        except ValueError:
            return None
        parts = relative.parts
        if len(parts) == 2 and parts[0] in self.statuses:
            return parts[0]
        return None

    @staticmethod
    def free_path(directory: Path, filename: str) -> Path:
        """Return the first non-existing name for *filename* in *directory*.

        Tries ``stem.md`` first, then ``stem-1.md``, ``stem-2.md``, ...
        """
        candidate = directory / _with_suffix(filename)
        stem, suffix = candidate.stem, candidate.suffix
        counter = 1
        while candidate.exists():
            candidate = directory / f"{stem}-{counter}{suffix}"
            counter += 1
        return candidate

    # ------------------------------------------------------------------
    # Directory layout
    # ------------------------------------------------------------------

    def ensure_layout(self) -> None:
        """Create every status directory under root.

        Safe to call repeatedly; never removes anything.

        Raises:
            FileSystemError: If a directory cannot be created.
        """
        for status in self.statuses:
            self.ensure_directory(self.root / status)

    def ensure_directory(self, directory: Path) -> None:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FileSystemError(
                "mkdir", str(directory), exc.strerror or str(exc)
            ) from exc

    # ------------------------------------------------------------------
    # Relocation
    # ------------------------------------------------------------------

    def relocate(self, current_path: Path, new_status: str) -> Path:
        """Move a record file into the directory of *new_status*.

        No-op when the file already sits at its target.  Otherwise the
        target directory is created if needed and the file is renamed
        to the first free name there.

        Args:
            current_path: Where the record file is now.
            new_status: The status the record is moving to.

        Returns:
            The file's new path.

        Raises:
            FileSystemError: If the directory cannot be created or the
                rename fails.  The file stays where it was.
        """
        current_path = Path(current_path).absolute()
        target = self.location_for(new_status, current_path.name)
        if target == current_path:
            return current_path

        self.ensure_directory(target.parent)
        target = self.free_path(target.parent, current_path.name)
        try:
            os.rename(current_path, target)
        except OSError as exc:
            raise FileSystemError(
                "rename", str(current_path), exc.strerror or str(exc)
            ) from exc

        logger.debug("Relocated %s -> %s", current_path, target)
        return target

    def restore(self, current_path: Path, original_path: Path) -> None:
        """Undo a ``relocate`` by renaming the file back where it was.

        Raises:
            FileSystemError: If the rename fails.
        """
        try:
            os.rename(current_path, original_path)
        except OSError as exc:
            raise FileSystemError(
                "rename", str(current_path), exc.strerror or str(exc)
            ) from exc
        logger.debug("Restored %s -> %s", current_path, original_path)


# ---------------------------------------------------------------------------
# Functional helpers
# ---------------------------------------------------------------------------


def location_for(
    root: Path,
    status: str,
    filename: str,
    statuses: Sequence[str] = DEFAULT_STATUSES,
) -> Path:
    """Functional form of ``FileStore.location_for``."""
    return FileStore(root, statuses).location_for(status, filename)


def status_from_path(
    path: Path,
    root: Path,
    statuses: Sequence[str] = DEFAULT_STATUSES,
) -> str | None:
    """Functional form of ``FileStore.status_from_path``."""
    return FileStore(root, statuses).status_from_path(path)


def relocate(
    current_path: Path,
    root: Path,
    new_status: str,
    statuses: Sequence[str] = DEFAULT_STATUSES,
) -> Path:
    """Functional form of ``FileStore.relocate``."""
    return FileStore(root, statuses).relocate(current_path, new_status)
