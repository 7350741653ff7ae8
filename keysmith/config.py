"""Configuration loading from YAML (or JSON, which YAML accepts)."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional, TypeVar

import yaml

from .errors import ConfigError
from .models import (
    DEFAULT_EMPTY_VALUE_MARKERS,
    DEFAULT_EXCLUDE,
    DEFAULT_INCLUDE,
    DEFAULT_PLACEHOLDER_FORMATS,
    EmptyValuePolicy,
    KeysmithConfig,
    LocaleFormat,
    LocalesConfig,
    SuspiciousKeyPolicy,
    SyncConfig,
    TranslationAdapterConfig,
)
from .placeholders import PLACEHOLDER_PATTERNS

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("keysmith.yaml", "keysmith.yml", "keysmith.json")

E = TypeVar("E", bound=Enum)


def find_config(root: Path) -> Optional[Path]:
    """Return the first default config file present in root, if any."""
    for name in CONFIG_FILENAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def load_config(config_path: Path) -> KeysmithConfig:
    """Load configuration from a YAML or JSON file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read configuration: {e}", path=config_path) from e

    if not data:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping", path=config_path)

    config = parse_config(data, config_path)
    logger.debug(
        "Loaded configuration from %s (source=%s, targets=%s)",
        config_path,
        config.source_language,
        ", ".join(config.target_languages) or "-",
    )
    return config


def parse_config(data: dict[str, Any], config_path: Optional[Path] = None) -> KeysmithConfig:
    """Build a KeysmithConfig from an already-decoded mapping."""
    adapter = _parse_adapter(data.get("translationAdapter"))
    sync = _parse_sync(data.get("sync") or {}, adapter, config_path)

    locales_data = data.get("locales") or {}
    locales = LocalesConfig()
    if isinstance(locales_data, dict):
        locales = LocalesConfig(
            format=_enum(LocaleFormat, locales_data.get("format"), LocaleFormat.AUTO, "locales.format", config_path),
            delimiter=_non_empty_str(locales_data.get("delimiter")) or ".",
            sort_keys=locales_data.get("sortKeys", True) is not False,
        )
    else:
        logger.warning("Invalid locales configuration: %s", locales_data)

    key_generation = data.get("keyGeneration") or {}
    namespace = "common"
    if isinstance(key_generation, dict):
        namespace = _non_empty_str(key_generation.get("namespace")) or "common"

    dynamic_keys = _parse_dynamic_keys(data.get("dynamicKeys"))

    return KeysmithConfig(
        source_language=_non_empty_str(data.get("sourceLanguage")) or "en",
        target_languages=_str_list(data.get("targetLanguages"), "targetLanguages"),
        locales_dir=_non_empty_str(data.get("localesDir")) or "locales",
        include=_str_list(data.get("include"), "include") or list(DEFAULT_INCLUDE),
        exclude=_str_list(data.get("exclude"), "exclude") if "exclude" in data else list(DEFAULT_EXCLUDE),
        translation_adapter=adapter,
        sync=sync,
        locales=locales,
        key_namespace=namespace,
        seed_target_locales=data.get("seedTargetLocales", True) is not False,
        dynamic_keys=dynamic_keys,
    )


def _parse_adapter(raw: Any) -> TranslationAdapterConfig:
    adapter = TranslationAdapterConfig()
    if raw is None:
        return adapter
    if not isinstance(raw, dict):
        logger.warning("Invalid translationAdapter configuration: %s", raw)
        return adapter
    return TranslationAdapterConfig(
        module=_non_empty_str(raw.get("module")) or adapter.module,
        hook_name=_non_empty_str(raw.get("hookName")) or adapter.hook_name,
    )


def _parse_sync(
    raw: Any,
    adapter: TranslationAdapterConfig,
    config_path: Optional[Path],
) -> SyncConfig:
    if not isinstance(raw, dict):
        logger.warning("Invalid sync configuration: %s", raw)
        raw = {}

    identifier = _non_empty_str(raw.get("translationIdentifier"))
    if identifier is None and not adapter.hook_name.startswith("use"):
        # Non-hook adapters export the translate function itself
        identifier = adapter.hook_name
    if identifier is None:
        identifier = "t"

    formats = _str_list(raw.get("placeholderFormats"), "sync.placeholderFormats")
    unknown = [name for name in formats if name not in PLACEHOLDER_PATTERNS]
    if unknown:
        raise ConfigError(
            "Unknown placeholder format(s): %s" % ", ".join(unknown),
            path=config_path,
        )

    seed_value = raw.get("seedValue", "")
    if not isinstance(seed_value, str):
        logger.warning("Invalid sync.seedValue: %s", seed_value)
        seed_value = ""

    return SyncConfig(
        translation_identifier=identifier,
        validate_interpolations=raw.get("validateInterpolations") is True,
        placeholder_formats=formats or list(DEFAULT_PLACEHOLDER_FORMATS),
        empty_value_policy=_enum(
            EmptyValuePolicy, raw.get("emptyValuePolicy"), EmptyValuePolicy.WARN,
            "sync.emptyValuePolicy", config_path,
        ),
        empty_value_markers=(
            _str_list(raw.get("emptyValueMarkers"), "sync.emptyValueMarkers")
            or list(DEFAULT_EMPTY_VALUE_MARKERS)
        ),
        suspicious_key_policy=_enum(
            SuspiciousKeyPolicy, raw.get("suspiciousKeyPolicy"), SuspiciousKeyPolicy.SKIP,
            "sync.suspiciousKeyPolicy", config_path,
        ),
        dynamic_key_globs=_str_list(raw.get("dynamicKeyGlobs"), "sync.dynamicKeyGlobs"),
        dynamic_key_assumptions=_str_list(raw.get("dynamicKeyAssumptions"), "sync.dynamicKeyAssumptions"),
        seed_value=seed_value,
    )


def _parse_dynamic_keys(raw: Any) -> dict[str, list[str]]:
    if raw is None:
        return {}
    expand = raw.get("expand") if isinstance(raw, dict) else None
    if not isinstance(expand, dict):
        logger.warning("Invalid dynamicKeys configuration: %s", raw)
        return {}

    result: dict[str, list[str]] = {}
    for pattern, values in expand.items():
        if not isinstance(values, list):
            logger.warning("Invalid dynamicKeys.expand entry: %s - %s", pattern, values)
            continue
        result[str(pattern)] = [str(v) for v in values]
    return result


def _enum(
    enum_cls: type[E],
    raw: Any,
    default: E,
    name: str,
    config_path: Optional[Path],
) -> E:
    if raw is None:
        return default
    try:
        return enum_cls(raw)
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ConfigError(
            f"Invalid value for {name}: {raw!r} (expected one of {allowed})",
            path=config_path,
        ) from e


def _non_empty_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _str_list(value: Any, name: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        logger.warning("Invalid %s configuration: %s", name, value)
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]
