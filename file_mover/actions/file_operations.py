"""
File Operations
===============

Lock-aware file moves.

A file counts as locked when it cannot be opened exclusively: on POSIX
another descriptor holds an flock on it, on Windows another handle denies
sharing or holds a byte-range lock. Moves use an atomic rename within a
volume and fall back to copy-and-delete across volumes.
"""

import errno
import os
import shutil
from pathlib import Path
from typing import Union

from file_mover.utils.logging_config import get_logger
from file_mover.utils.exceptions import ErrorCode, LockDetectedError, MoveError

if os.name == "nt":
    import msvcrt
else:
    import fcntl

logger = get_logger(__name__)

PathLike = Union[str, Path]

# ERROR_SHARING_VIOLATION, ERROR_LOCK_VIOLATION
WINDOWS_LOCK_ERRORS = frozenset({32, 33})
LOCK_ERRNOS = frozenset(
    getattr(errno, name)
    for name in ("EAGAIN", "EWOULDBLOCK", "EBUSY", "ETXTBSY")
    if hasattr(errno, name)
)


def is_lock_error(error: BaseException) -> bool:
    """Check whether an error means "file in use by someone else".

    Only these errors are worth retrying; everything else is final.
    """
    if isinstance(error, (LockDetectedError, BlockingIOError)):
        return True
    if isinstance(error, OSError):
        if getattr(error, "winerror", None) in WINDOWS_LOCK_ERRORS:
            return True
        return error.errno in LOCK_ERRNOS
    return False


class FileOperations:
    """Lock probing, conflict handling and moves for the move worker."""

    def probe_lock(self, path: PathLike) -> None:
        """Try to take an exclusive lock on a file and release it again.

        Args:
            path: File to probe.

        Raises:
            LockDetectedError: If another process holds the file.
            OSError: For any other problem opening the file.
        """
        path = Path(path)
        try:
            with open(path, "rb") as f:
                self._try_exclusive(f.fileno(), path)
        except LockDetectedError:
            raise
        except OSError as e:
            if is_lock_error(e):
                raise LockDetectedError(
                    "File is in use by another process", file_path=str(path), cause=e
                )
            raise

    if os.name == "nt":
        @staticmethod
        def _try_exclusive(fd: int, path: Path) -> None:
            try:
                msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
            except OSError as e:
                raise LockDetectedError(
                    "File is locked by another process", file_path=str(path), cause=e
                )
            os.lseek(fd, 0, os.SEEK_SET)
            msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
    else:
        @staticmethod
        def _try_exclusive(fd: int, path: Path) -> None:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except OSError as e:
                if is_lock_error(e):
                    raise LockDetectedError(
                        "File is locked by another process", file_path=str(path), cause=e
                    )
                raise
            fcntl.flock(fd, fcntl.LOCK_UN)

    def target_exists(self, target: PathLike) -> bool:
        return os.path.lexists(target)

    def unique_path(self, dest_path: PathLike) -> Path:
        """Resolve a filename conflict by appending a counter.

        Args:
            dest_path: Desired destination path.

        Returns:
            Available path (may have counter suffix).

        Raises:
            MoveError: If no free name is found.
        """
        dest_path = Path(dest_path)
        if not self.target_exists(dest_path):
            return dest_path

        stem = dest_path.stem
        suffix = dest_path.suffix
        parent = dest_path.parent

        for counter in range(1, 1001):
            new_path = parent / f"{stem}_{counter}{suffix}"
            if not self.target_exists(new_path):
                return new_path

        raise MoveError(
            "Too many files with same name",
            target_path=str(dest_path),
            error_code=ErrorCode.TARGET_EXISTS,
        )

    def move(self, source: PathLike, target: PathLike, overwrite: bool = False) -> Path:
        """Move a file, atomically when source and target share a volume.

        Args:
            source: File to move.
            target: Full destination path, including filename.
            overwrite: Replace an existing target.

        Returns:
            The destination path.

        Raises:
            MoveError: If the target exists and overwrite is False.
            OSError: If the rename or copy fails.
        """
        source = Path(source)
        target = Path(target)

        if not overwrite and self.target_exists(target):
            raise MoveError(
                "Target file already exists",
                file_path=str(source),
                target_path=str(target),
                error_code=ErrorCode.TARGET_EXISTS,
            )

        try:
            os.replace(source, target)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise
            logger.debug(f"Cross-device move, copying: {source} -> {target}")
            shutil.copy2(source, target)
            try:
                os.unlink(source)
            except OSError:
                # Source still locked or protected: leave exactly one copy
                os.unlink(target)
                raise

        logger.debug(f"Moved: {source} -> {target}")
        return target
