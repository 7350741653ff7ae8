"""JSON locale files as flat key/value maps."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .cache import atomic_write_text
from .errors import LocaleStoreError
from .models import LocaleFileStats, LocaleFormat

logger = logging.getLogger(__name__)

ADDED = "added"
UPDATED = "updated"
UNCHANGED = "unchanged"

LocaleData = dict[str, Optional[str]]


def flatten_tree(tree: dict[str, Any], delimiter: str = ".", prefix: str = "") -> LocaleData:
    """Flatten nested objects into delimiter-joined keys."""
    flat: LocaleData = {}
    for key, value in tree.items():
        full_key = f"{prefix}{delimiter}{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(flatten_tree(value, delimiter, full_key))
        else:
            flat[full_key] = _coerce_value(value)
    return flat


def expand_tree(flat: LocaleData, delimiter: str = ".") -> dict[str, Any]:
    """Inverse of flatten_tree.

    A key that is both a leaf and a parent stays a leaf in the tree, and the
    keys below it are kept flat at the top level. The outcome does not depend
    on the order of flat.
    """
    tree: dict[str, Any] = {}
    for key, value in flat.items():
        parts = key.split(delimiter)
        if any(delimiter.join(parts[:i]) in flat for i in range(1, len(parts))):
            logger.warning("Key %s collides with a parent key; kept flat", key)
            tree[key] = value
            continue
        node = tree
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = value
    return tree


def detect_format(data: Any) -> LocaleFormat:
    if isinstance(data, dict) and any(isinstance(v, dict) for v in data.values()):
        return LocaleFormat.NESTED
    return LocaleFormat.FLAT


def load(path: Path, delimiter: str = ".") -> LocaleData:
    """Read one locale file as a flat map. A missing file is an empty map."""
    data, _ = _read(path, delimiter)
    return data


def save(
    path: Path,
    data: LocaleData,
    format: LocaleFormat = LocaleFormat.FLAT,
    delimiter: str = ".",
    sort_keys: bool = True,
) -> None:
    """Write a flat map to a locale file in the requested layout."""
    ordered = dict(sorted(data.items())) if sort_keys else dict(data)
    structured = expand_tree(ordered, delimiter) if format is LocaleFormat.NESTED else ordered
    if format is LocaleFormat.NESTED and sort_keys:
        structured = _sort_nested(structured)
    atomic_write_text(path, json.dumps(structured, indent=2, ensure_ascii=False) + "\n")


def _read(path: Path, delimiter: str) -> tuple[LocaleData, Optional[LocaleFormat]]:
    if not path.exists():
        return {}, None
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        raise LocaleStoreError(f"Cannot read locale file {path}: {e}", path) from e
    if not isinstance(raw, dict):
        raise LocaleStoreError(f"Locale file {path} must contain a JSON object", path)
    detected = detect_format(raw)
    if detected is LocaleFormat.NESTED:
        return flatten_tree(raw, delimiter), detected
    return {str(k): _coerce_value(v) for k, v in raw.items()}, detected


def _coerce_value(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _sort_nested(tree: dict[str, Any]) -> dict[str, Any]:
    return {
        key: _sort_nested(value) if isinstance(value, dict) else value
        for key, value in sorted(tree.items())
    }


@dataclass
class _LocaleEntry:
    locale: str
    path: Path
    data: LocaleData
    format: LocaleFormat
    dirty: bool = False
    added: set[str] = field(default_factory=set)
    updated: set[str] = field(default_factory=set)
    removed: set[str] = field(default_factory=set)


class LocaleStore:
    """In-memory view of ``<locales_dir>/<locale>.json`` files.

    Changes are collected per locale and written by flush().
    """

    def __init__(
        self,
        locales_dir: Path,
        format: LocaleFormat = LocaleFormat.AUTO,
        delimiter: str = ".",
        sort_keys: bool = True,
    ) -> None:
        self.locales_dir = Path(locales_dir)
        self.format = format
        self.delimiter = delimiter
        self.sort_keys = sort_keys
        self._entries: dict[str, _LocaleEntry] = {}

    def file_path(self, locale: str) -> Path:
        return self.locales_dir / f"{locale}.json"

    def get(self, locale: str) -> LocaleData:
        """Copy of the current key/value map for a locale."""
        return dict(self._ensure(locale).data)

    def get_value(self, locale: str, key: str) -> Optional[str]:
        return self._ensure(locale).data.get(key)

    def has(self, locale: str, key: str) -> bool:
        return key in self._ensure(locale).data

    def upsert(self, locale: str, key: str, value: str) -> str:
        entry = self._ensure(locale)
        exists = key in entry.data
        if exists and entry.data[key] == value:
            return UNCHANGED

        entry.data[key] = value
        entry.dirty = True
        entry.removed.discard(key)
        if not exists:
            entry.added.add(key)
            return ADDED
        entry.updated.add(key)
        return UPDATED

    def remove(self, locale: str, key: str) -> bool:
        entry = self._ensure(locale)
        if key not in entry.data:
            return False
        del entry.data[key]
        entry.dirty = True
        entry.added.discard(key)
        entry.updated.discard(key)
        entry.removed.add(key)
        return True

    def flush(self) -> list[LocaleFileStats]:
        """Write every changed locale and return what changed."""
        stats = []
        for entry in self._entries.values():
            if not entry.dirty:
                continue
            save(entry.path, entry.data, entry.format, self.delimiter, self.sort_keys)
            stats.append(
                LocaleFileStats(
                    locale=entry.locale,
                    path=str(entry.path),
                    total_keys=len(entry.data),
                    added=sorted(entry.added),
                    updated=sorted(entry.updated),
                    removed=sorted(entry.removed),
                )
            )
            logger.info(
                "Wrote %s (%d keys, +%d ~%d -%d)",
                entry.path,
                len(entry.data),
                len(entry.added),
                len(entry.updated),
                len(entry.removed),
            )
            entry.dirty = False
            entry.added.clear()
            entry.updated.clear()
            entry.removed.clear()
        return stats

    def _ensure(self, locale: str) -> _LocaleEntry:
        entry = self._entries.get(locale)
        if entry is None:
            path = self.file_path(locale)
            data, detected = _read(path, self.delimiter)
            if self.format is LocaleFormat.AUTO:
                layout = detected or LocaleFormat.FLAT
            else:
                layout = self.format
            entry = _LocaleEntry(locale=locale, path=path, data=data, format=layout)
            self._entries[locale] = entry
            logger.debug("Loaded %s (%d keys, %s)", path, len(data), layout.value)
        return entry
