"""
File Validator
==============

Decides whether a path is in scope for monitoring, based on an
extension allow-list and a regular expression for the filename stem.
"""

import os
import re
import threading
from typing import Iterable, Optional, Pattern, Set, Tuple, Union

from file_mover.utils.exceptions import ConfigurationError, InvalidStateError
from file_mover.utils.logging_config import get_logger

logger = get_logger(__name__)


def normalize_extension(extension: str) -> str:
    """Lower-case an extension and make sure it starts with a dot."""
    extension = extension.strip().lower()
    if not extension.startswith("."):
        extension = "." + extension
    return extension


class FileValidator:
    """Extension and filename pattern filter.

    With no extensions and no pattern configured every path matches.
    Otherwise the extension must be allowed (when an allow-list is set)
    and the filename without its extension must fully match the pattern
    (when a pattern is set).
    """

    def __init__(
        self,
        extensions: Optional[Iterable[str]] = None,
        pattern: Optional[Union[str, Pattern[str]]] = None,
    ):
        self._extensions: Set[str] = set()
        self._pattern: Optional[Pattern[str]] = None
        self._frozen = False
        self._lock = threading.Lock()
        self.configure(extensions, pattern)

    def configure(
        self,
        extensions: Optional[Iterable[str]] = None,
        pattern: Optional[Union[str, Pattern[str]]] = None,
    ) -> None:
        """Replace the extension allow-list and filename pattern.

        Args:
            extensions: Extensions such as ".txt" or "PDF"; empty or None
                allows every extension.
            pattern: Regex string or compiled pattern for the stem; empty
                or None disables the name check.

        Raises:
            ConfigurationError: If the pattern does not compile.
            InvalidStateError: If the validator is in use by a running monitor.
        """
        if isinstance(extensions, str):
            extensions = [extensions]

        allowed = {
            normalize_extension(ext)
            for ext in (extensions or [])
            if ext and ext.strip() not in ("", ".", "*", ".*")
        }

        compiled: Optional[Pattern[str]] = None
        if isinstance(pattern, str):
            if pattern:
                try:
                    compiled = re.compile(pattern)
                except re.error as e:
                    raise ConfigurationError(
                        f"Invalid filename pattern {pattern!r}: {e}",
                        config_key="filename_pattern",
                        cause=e,
                    )
        elif pattern is not None:
            compiled = pattern

        with self._lock:
            if self._frozen:
                raise InvalidStateError("Cannot reconfigure the validator while monitoring is active")
            self._extensions = allowed
            self._pattern = compiled

        logger.debug(
            f"Validator configured: extensions={sorted(allowed) or 'all'}, "
            f"pattern={compiled.pattern if compiled else None}"
        )

    def freeze(self) -> None:
        """Reject reconfiguration until thaw() is called."""
        with self._lock:
            self._frozen = True

    def thaw(self) -> None:
        with self._lock:
            self._frozen = False

    @property
    def watches_everything(self) -> bool:
        """True when no extension or name restriction is set."""
        return not self._extensions and self._pattern is None

    @property
    def has_extension_filter(self) -> bool:
        return bool(self._extensions)

    @property
    def has_name_pattern(self) -> bool:
        return self._pattern is not None

    @property
    def allowed_extensions(self) -> Tuple[str, ...]:
        return tuple(sorted(self._extensions))

    @property
    def pattern(self) -> Optional[str]:
        return self._pattern.pattern if self._pattern is not None else None

    def matches(self, path: Union[str, "os.PathLike[str]"]) -> bool:
        """Check whether a path passes the extension and name filters.

        Never raises: anything unexpected counts as a non-match.

        Args:
            path: File path to check.

        Returns:
            True if the file should be handled.
        """
        try:
            if self.watches_everything:
                return True

            name = os.path.basename(os.fspath(path))
            if not name:
                return False
            stem, extension = os.path.splitext(name)

            if self._extensions and extension.lower() not in self._extensions:
                return False

            if self._pattern is not None:
                return self._pattern.fullmatch(stem) is not None

            return True
        except Exception as e:
            logger.debug(f"Validator rejected {path!r}: {e}")
            return False
