"""Persistent reference cache with whole-file and per-file invalidation."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from . import __version__
from .models import FileFingerprint, KeysmithConfig, ReferenceCacheEntry, ReferenceCacheFile
from .parsers.registry import ParserRegistry

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
CACHE_DIRNAME = os.path.join(".keysmith", "cache")
EXTRACTOR_CACHE_FILENAME = "references.json"
SYNC_CACHE_FILENAME = "sync-references.json"


class CacheInvalidationReason(Enum):
    """Why a persisted cache was discarded as a whole."""

    VERSION = "version"
    TRANSLATION_IDENTIFIER = "translation_identifier"
    CONFIG = "config"
    TOOL_VERSION = "tool_version"
    PARSER_SIGNATURE = "parser_signature"
    PARSER_AVAILABILITY = "parser_availability"
    CORRUPT = "corrupt"


def compute_cache_version(parser_signature: str, schema: int = SCHEMA_VERSION) -> int:
    """Cache version derived from the schema constant and the parser signature."""
    try:
        suffix = int(parser_signature[:8], 16) % 1_000_000
    except ValueError:
        suffix = 0
    return schema * 1_000_000 + suffix


def hash_config(config: KeysmithConfig, translation_identifier: str) -> str:
    """SHA-256 of the config subset that affects extraction results."""
    subset = {
        "include": sorted(config.include),
        "exclude": sorted(config.exclude),
        "translation_identifier": translation_identifier,
        "adapter": {
            "module": config.translation_adapter.module,
            "hook_name": config.translation_adapter.hook_name,
        },
    }
    payload = json.dumps(subset, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def fingerprint(path: Path) -> FileFingerprint:
    stat = path.stat()
    return FileFingerprint(mtime_ms=stat.st_mtime_ns / 1_000_000, size=stat.st_size)


@dataclass(frozen=True)
class CacheMetadata:
    """Top-level values a persisted cache must match to be reused."""

    version: int
    translation_identifier: str
    config_hash: str
    tool_version: str
    parser_signature: str
    parser_availability: dict[str, bool] = field(default_factory=dict)

    @classmethod
    def for_run(
        cls,
        config: KeysmithConfig,
        registry: ParserRegistry,
        workspace_root: Path,
        translation_identifier: str,
    ) -> CacheMetadata:
        signature = registry.signature()
        return cls(
            version=compute_cache_version(signature),
            translation_identifier=translation_identifier,
            config_hash=hash_config(config, translation_identifier),
            tool_version=__version__,
            parser_signature=signature,
            parser_availability=registry.availability(workspace_root),
        )

    def new_file(self, files: dict[str, ReferenceCacheEntry]) -> ReferenceCacheFile:
        return ReferenceCacheFile(
            version=self.version,
            translation_identifier=self.translation_identifier,
            config_hash=self.config_hash,
            tool_version=self.tool_version,
            parser_signature=self.parser_signature,
            parser_availability=dict(self.parser_availability),
            files=files,
        )


class CacheValidator:
    """Compares a loaded cache against the metadata of the current run."""

    def __init__(self, expected: CacheMetadata) -> None:
        self.expected = expected

    def validate(self, cache: ReferenceCacheFile) -> list[CacheInvalidationReason]:
        expected = self.expected
        reasons = []
        if cache.version != expected.version:
            reasons.append(CacheInvalidationReason.VERSION)
        if cache.translation_identifier != expected.translation_identifier:
            reasons.append(CacheInvalidationReason.TRANSLATION_IDENTIFIER)
        if cache.config_hash != expected.config_hash:
            reasons.append(CacheInvalidationReason.CONFIG)
        if cache.tool_version != expected.tool_version:
            reasons.append(CacheInvalidationReason.TOOL_VERSION)
        if cache.parser_signature != expected.parser_signature:
            reasons.append(CacheInvalidationReason.PARSER_SIGNATURE)
        if cache.parser_availability != expected.parser_availability:
            reasons.append(CacheInvalidationReason.PARSER_AVAILABILITY)
        return reasons

    @staticmethod
    def format_reasons(reasons: list[CacheInvalidationReason]) -> str:
        return "; ".join(reason.value for reason in reasons)


@dataclass
class CacheStats:
    """Hit and miss counters for one run."""

    hits: int = 0
    misses: int = 0
    invalidations: dict[str, int] = field(default_factory=dict)

    def record_invalidation(self, reason: CacheInvalidationReason) -> None:
        self.invalidations[reason.value] = self.invalidations.get(reason.value, 0) + 1

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hit_rate, 4),
            "invalidations": dict(sorted(self.invalidations.items())),
        }


class ReferenceCache:
    """One persisted cache file.

    The cache value is loaded once, mutated in memory by the caller and
    written back wholesale with save().
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(
        self,
        expected: CacheMetadata,
        stats: Optional[CacheStats] = None,
    ) -> Optional[ReferenceCacheFile]:
        """Return the cache if it exists and matches expected, else None."""
        if not self.path.exists():
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                cache = ReferenceCacheFile.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.info("Discarding unreadable reference cache %s: %s", self.path, e)
            if stats is not None:
                stats.record_invalidation(CacheInvalidationReason.CORRUPT)
            return None

        reasons = CacheValidator(expected).validate(cache)
        if reasons:
            logger.info(
                "Reference cache %s invalidated (%s)",
                self.path,
                CacheValidator.format_reasons(reasons),
            )
            if stats is not None:
                for reason in reasons:
                    stats.record_invalidation(reason)
            return None

        logger.debug("Loaded reference cache %s (%d files)", self.path, len(cache.files))
        return cache

    def save(self, cache: ReferenceCacheFile) -> None:
        """Write the whole cache atomically."""
        data = cache.to_dict()
        data["files"] = dict(sorted(data["files"].items()))
        payload = json.dumps(data, sort_keys=True, indent=2, ensure_ascii=False) + "\n"
        atomic_write_text(self.path, payload)
        logger.debug("Saved reference cache %s (%d files)", self.path, len(cache.files))

    def invalidate(self) -> None:
        """Delete the persisted cache, if any."""
        try:
            self.path.unlink()
            logger.info("Deleted reference cache %s", self.path)
        except FileNotFoundError:
            pass


def lookup_entry(
    cache: Optional[ReferenceCacheFile],
    relative_path: str,
    current: FileFingerprint,
) -> Optional[ReferenceCacheEntry]:
    """Cached entry for a file if its fingerprint is unchanged."""
    if cache is None:
        return None
    entry = cache.files.get(relative_path)
    if entry is None or entry.fingerprint != current:
        return None
    return entry


def atomic_write_text(path: Path, text: str) -> None:
    """Write text to path via a temporary file and rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


class CacheManager:
    """Inspects and clears the cache directory of a workspace."""

    def __init__(self, workspace_root: Path) -> None:
        self.cache_dir = Path(workspace_root) / CACHE_DIRNAME

    def cache_files(self) -> dict[str, ReferenceCache]:
        return {
            "extractor": ReferenceCache(self.cache_dir / EXTRACTOR_CACHE_FILENAME),
            "sync": ReferenceCache(self.cache_dir / SYNC_CACHE_FILENAME),
        }

    def status(self, expected: CacheMetadata) -> dict[str, dict[str, Any]]:
        """Per cache file: whether it exists, is stale, and why."""
        status = {}
        for name, cache in self.cache_files().items():
            entry: dict[str, Any] = {"path": str(cache.path), "exists": cache.path.exists()}
            if entry["exists"]:
                entry.update(self._inspect(cache.path, expected))
            else:
                entry.update({"stale": False, "reasons": [], "files": 0})
            status[name] = entry
        return status

    def is_stale(self, expected: CacheMetadata) -> bool:
        return any(entry["stale"] for entry in self.status(expected).values())

    def clear_all(self) -> int:
        """Delete every cache file. Returns how many were removed."""
        removed = 0
        for cache in self.cache_files().values():
            if cache.path.exists():
                cache.invalidate()
                removed += 1
        return removed

    @staticmethod
    def _inspect(path: Path, expected: CacheMetadata) -> dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                cache = ReferenceCacheFile.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError, AttributeError):
            return {"stale": True, "reasons": [CacheInvalidationReason.CORRUPT.value], "files": 0}
        reasons = CacheValidator(expected).validate(cache)
        return {
            "stale": bool(reasons),
            "reasons": [reason.value for reason in reasons],
            "files": len(cache.files),
        }
