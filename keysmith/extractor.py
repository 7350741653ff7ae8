"""Reference extraction: file discovery, cache-gated parsing and merging."""

from __future__ import annotations

import logging
import os
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .cache import (
    CACHE_DIRNAME,
    EXTRACTOR_CACHE_FILENAME,
    CacheMetadata,
    CacheStats,
    ReferenceCache,
    fingerprint,
    lookup_entry,
)
from .errors import ConfigError, SourceResolutionError
from .models import (
    DynamicKeyWarning,
    FileFingerprint,
    KeysmithConfig,
    ParseResult,
    ReferenceCacheEntry,
    ReferenceCacheFile,
    TranslationReference,
)
from .parsers.registry import ParserRegistry, create_default_registry

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = min(32, (os.cpu_count() or 1) + 4)

_BRACE_RE = re.compile(r"\{([^{}]*)\}")


@dataclass
class ExtractionResult:
    """Merged references of one extraction run."""

    references: list[TranslationReference] = field(default_factory=list)
    references_by_key: dict[str, list[TranslationReference]] = field(default_factory=dict)
    key_set: set[str] = field(default_factory=set)
    dynamic_key_warnings: list[DynamicKeyWarning] = field(default_factory=list)
    files_scanned: int = 0
    cache_stats: CacheStats = field(default_factory=CacheStats)


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives, which pathlib globbing does not support."""
    match = _BRACE_RE.search(pattern)
    if match is None:
        if "{" in pattern or "}" in pattern:
            raise ConfigError(f"Unbalanced braces in glob: {pattern}", pattern=pattern)
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end():]
    expanded = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(head + option + tail))
    return expanded


def compile_path_glob(pattern: str) -> re.Pattern:
    """Regex for a workspace-relative glob with ``**`` support."""
    regex = ""
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if pattern.startswith("**/", i):
            regex += "(?:.*/)?"
            i += 3
            continue
        if pattern.startswith("**", i):
            regex += ".*"
            i += 2
            continue
        if char == "*":
            regex += "[^/]*"
        elif char == "?":
            regex += "[^/]"
        else:
            regex += re.escape(char)
        i += 1
    return re.compile(f"^{regex}$")


class PathFilter:
    """Matches workspace-relative posix paths against exclude globs."""

    def __init__(self, patterns: Iterable[str]) -> None:
        self._matchers: list[tuple[re.Pattern, bool]] = []
        for raw in patterns:
            raw = raw.strip()
            if raw.startswith("./"):
                raw = raw[2:]
            for pattern in expand_braces(raw):
                if not pattern:
                    continue
                # Patterns without a slash match a file name at any depth
                self._matchers.append((compile_path_glob(pattern), "/" not in pattern))

    def matches(self, relative_path: str) -> bool:
        name = relative_path.rsplit("/", 1)[-1]
        for regex, basename_only in self._matchers:
            if regex.match(relative_path) or (basename_only and regex.match(name)):
                return True
        return False


class ReferenceExtractor:
    """Finds translation references across the workspace.

    Unchanged files (same mtime and size as recorded in the cache) reuse
    their cached results; everything else is parsed by the dialect parser
    the registry assigns to the file extension.
    """

    def __init__(
        self,
        config: KeysmithConfig,
        workspace_root: Path,
        registry: Optional[ParserRegistry] = None,
        cache_path: Optional[Path] = None,
        translation_identifier: Optional[str] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self.config = config
        self.workspace_root = Path(workspace_root).resolve()
        self.registry = registry or create_default_registry()
        self.translation_identifier = translation_identifier or config.sync.translation_identifier
        self.cache = ReferenceCache(
            cache_path or self.workspace_root / CACHE_DIRNAME / EXTRACTOR_CACHE_FILENAME
        )
        self.max_workers = max(1, max_workers)
        self._exclude = PathFilter([*config.exclude, CACHE_DIRNAME.replace(os.sep, "/") + "/**"])

    # ── File discovery ──

    def resolve_source_files(self) -> list[Path]:
        """Sorted absolute paths matched by include and not by exclude."""
        return self._resolve(self.config.include)

    def resolve_targets(self, targets: Sequence[str]) -> list[Path]:
        """Resolve explicit target paths or globs, restricted to source files."""
        sources = set(self.resolve_source_files())
        resolved: set[Path] = set()
        globs = []
        for target in targets:
            candidate = Path(target)
            if not candidate.is_absolute():
                candidate = self.workspace_root / candidate
            if candidate.is_file():
                resolved.add(candidate.resolve())
            else:
                globs.append(target)
        if globs:
            resolved.update(self._resolve(globs))
        return sorted(path for path in resolved if path in sources)

    def relative_path(self, path: Path) -> str:
        try:
            return path.relative_to(self.workspace_root).as_posix()
        except ValueError:
            return path.as_posix()

    def _resolve(self, patterns: Sequence[str]) -> list[Path]:
        found: set[Path] = set()
        for raw in patterns:
            for pattern in expand_braces(raw):
                if Path(pattern).is_absolute():
                    try:
                        pattern = Path(pattern).relative_to(self.workspace_root).as_posix()
                    except ValueError as e:
                        raise ConfigError(
                            f"Glob outside the workspace: {raw}", pattern=raw
                        ) from e
                try:
                    matches = list(self.workspace_root.glob(pattern))
                except (ValueError, NotImplementedError) as e:
                    raise ConfigError(f"Invalid glob {raw!r}: {e}", pattern=raw) from e
                for path in matches:
                    if path.is_file() and not self._exclude.matches(self.relative_path(path)):
                        found.add(path.resolve())
        return sorted(found)

    # ── Extraction ──

    def expected_cache_metadata(self) -> CacheMetadata:
        return CacheMetadata.for_run(
            self.config, self.registry, self.workspace_root, self.translation_identifier
        )

    def load_cache(
        self,
        invalidate_cache: bool,
        stats: CacheStats,
    ) -> tuple[CacheMetadata, Optional[ReferenceCacheFile]]:
        metadata = self.expected_cache_metadata()
        if invalidate_cache:
            self.cache.invalidate()
            return metadata, None
        return metadata, self.cache.load(metadata, stats)

    def extract(
        self,
        invalidate_cache: bool = False,
        assumed_keys: Optional[Iterable[str]] = None,
    ) -> ExtractionResult:
        """Scan every source file, reuse cache hits and persist the cache."""
        files = self.resolve_source_files()
        if not files:
            raise SourceResolutionError(self.config.include)

        stats = CacheStats()
        metadata, cache = self.load_cache(invalidate_cache, stats)
        next_entries: dict[str, ReferenceCacheEntry] = {}
        result = self.collect(files, cache, next_entries, assumed_keys, stats)
        self.cache.save(metadata.new_file(next_entries))
        return result

    def collect(
        self,
        files: Sequence[Path],
        cache: Optional[ReferenceCacheFile],
        next_entries: dict[str, ReferenceCacheEntry],
        assumed_keys: Optional[Iterable[str]] = None,
        stats: Optional[CacheStats] = None,
    ) -> ExtractionResult:
        """Parse or reuse each file and merge results in sorted path order.

        Fresh or reused entries are written into next_entries for the caller
        to persist.
        """
        stats = stats or CacheStats()
        ordered = sorted(files)
        relative = [self.relative_path(path) for path in ordered]

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            fingerprints = list(pool.map(_safe_fingerprint, ordered))

            entries: dict[str, Optional[ReferenceCacheEntry]] = {}
            to_read: list[tuple[Path, str, FileFingerprint]] = []
            for path, rel, current in zip(ordered, relative, fingerprints):
                if current is None:
                    entries[rel] = None
                    continue
                hit = lookup_entry(cache, rel, current)
                if hit is not None:
                    stats.hits += 1
                    entries[rel] = hit
                else:
                    stats.misses += 1
                    to_read.append((path, rel, current))

            contents = list(pool.map(_safe_read, [path for path, _, _ in to_read]))

        for (path, rel, current), content in zip(to_read, contents):
            if content is None:
                entries[rel] = None
                continue
            parsed = self._parse(rel, content)
            entries[rel] = ReferenceCacheEntry(
                fingerprint=current,
                references=parsed.references,
                dynamic_key_warnings=parsed.dynamic_key_warnings,
            )

        result = ExtractionResult(files_scanned=len(ordered), cache_stats=stats)
        for rel in relative:
            entry = entries[rel]
            if entry is None:
                continue
            next_entries[rel] = entry
            for reference in entry.references:
                result.references.append(reference)
                result.references_by_key.setdefault(reference.key, []).append(reference)
                result.key_set.add(reference.key)
            result.dynamic_key_warnings.extend(entry.dynamic_key_warnings)

        for key in assumed_keys or ():
            result.key_set.add(key)

        logger.debug(
            "Extracted %d references from %d files (%d cached, %d parsed)",
            len(result.references),
            len(ordered),
            stats.hits,
            stats.misses,
        )
        return result

    def _parse(self, relative_path: str, content: str) -> ParseResult:
        parser = self.registry.get_for_file(relative_path)
        if parser is None:
            return ParseResult()
        if not self.registry.is_available(parser, self.workspace_root):
            return ParseResult()
        try:
            return parser.parse_file(
                relative_path, content, self.translation_identifier, self.workspace_root
            )
        except Exception as e:
            logger.warning("Failed to parse %s: %s", relative_path, e)
            return ParseResult()


def _safe_fingerprint(path: Path) -> Optional[FileFingerprint]:
    try:
        return fingerprint(path)
    except OSError as e:
        logger.warning("Cannot stat %s: %s", path, e)
        return None


def _safe_read(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning("Cannot read %s: %s", path, e)
        return None
