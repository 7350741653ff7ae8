"""Exceptions raised by keysmith."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Union


class KeysmithError(Exception):
    """Base class for all keysmith errors."""


class ConfigError(KeysmithError):
    """Configuration is unreadable or contains an invalid value or glob."""

    def __init__(
        self,
        message: str,
        path: Optional[Union[str, Path]] = None,
        pattern: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None
        self.pattern = pattern


class LocaleStoreError(KeysmithError):
    """A locale file exists but cannot be read or decoded."""

    def __init__(self, message: str, path: Union[str, Path]) -> None:
        super().__init__(message)
        self.path = Path(path)


class SourceResolutionError(KeysmithError):
    """Include patterns resolved to no source files at all."""

    def __init__(self, patterns: Sequence[str]) -> None:
        self.patterns = list(patterns)
        super().__init__(
            "No source files matched include patterns: %s" % ", ".join(self.patterns)
        )
