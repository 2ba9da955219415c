"""Configuration for listtools.

Settings come from a YAML file (see config/listtools.yaml) layered over
built-in defaults. The file is located through `--config`, then the
LISTTOOLS_CONFIG environment variable, then config/listtools.yaml at the
project root. LISTTOOLS_DICTIONARY overrides the dictionary path.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from listfile.dictionary import ListfileDictionary

_log = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "listtools.yaml"

OUTPUT_FORMATS = ("flatfile", "compressed")


class SettingsError(Exception):
    pass


@dataclass(frozen=True)
class TrustedPrefix:
    """Paths under `prefix` carry reliable file names (e.g. md5-named textures)."""
    prefix: str
    exclude_suffixes: Tuple[str, ...] = ()

    def matches(self, path: str) -> bool:
        lowered = path.lower()
        if not lowered.startswith(self.prefix.lower()):
            return False
        return not any(lowered.endswith(s.lower()) for s in self.exclude_suffixes)


DEFAULT_TRUSTED_PREFIXES = (
    TrustedPrefix("textures\\bakednpctextures\\"),
    TrustedPrefix("textures\\minimap\\", ("md5translate.trs",)),
)


def default_dictionary_path() -> Path:
    env_path = os.environ.get("LISTTOOLS_DICTIONARY")
    if env_path:
        return Path(env_path)
    base = os.environ.get("LOCALAPPDATA") or os.environ.get("XDG_DATA_HOME")
    root = Path(base) if base else Path.home() / ".local" / "share"
    return root / "listtools" / f"dictionary.{ListfileDictionary.EXTENSION}"


@dataclass
class Settings:
    dictionary_path: Path = field(default_factory=default_dictionary_path)
    package_extensions: Tuple[str, ...] = (".txt", ".lst")
    trusted_prefixes: Tuple[TrustedPrefix, ...] = DEFAULT_TRUSTED_PREFIXES
    default_tolerance: Optional[float] = None
    output_format: str = "flatfile"
    log_level: str = "WARNING"
    source: Optional[Path] = None

    def is_trusted(self, path: str) -> bool:
        return any(p.matches(path) for p in self.trusted_prefixes)


def _load_yaml(path: Path) -> Dict[str, Any]:
    yaml = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf8") as f:
            data = yaml.load(f) or {}
    except (OSError, YAMLError) as e:
        raise SettingsError(f"Failed to read settings {path}: {e}") from e
    if not isinstance(data, dict):
        raise SettingsError(f"Settings file {path} must contain a mapping, got {type(data).__name__}")
    return data


def _parse_prefixes(raw: Any, path: Path) -> Tuple[TrustedPrefix, ...]:
    if not isinstance(raw, list):
        raise SettingsError(f"{path}: trusted_prefixes must be a list")
    out: List[TrustedPrefix] = []
    for item in raw:
        if isinstance(item, str):
            out.append(TrustedPrefix(item))
        elif isinstance(item, dict) and item.get("prefix"):
            excludes = item.get("exclude_suffixes") or []
            out.append(TrustedPrefix(str(item["prefix"]), tuple(str(s) for s in excludes)))
        else:
            raise SettingsError(f"{path}: invalid trusted prefix entry {item!r}")
    return tuple(out)


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Build Settings from defaults plus the first configuration file found."""
    explicit = config_path or (Path(os.environ["LISTTOOLS_CONFIG"]) if os.environ.get("LISTTOOLS_CONFIG") else None)
    if explicit is not None and not explicit.is_file():
        raise SettingsError(f"Settings file not found: {explicit}")
    path = explicit or (DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.is_file() else None)

    settings = Settings()
    if path is None:
        _log.debug("no settings file, using defaults")
        return settings

    data = _load_yaml(path)
    settings.source = path
    if data.get("dictionary_path") and not os.environ.get("LISTTOOLS_DICTIONARY"):
        settings.dictionary_path = Path(os.path.expanduser(str(data["dictionary_path"])))
    if data.get("package_extensions"):
        settings.package_extensions = tuple(str(e).lower() for e in data["package_extensions"])
    if "trusted_prefixes" in data:
        settings.trusted_prefixes = _parse_prefixes(data["trusted_prefixes"] or [], path)
    if data.get("default_tolerance") is not None:
        try:
            settings.default_tolerance = float(data["default_tolerance"])
        except (TypeError, ValueError) as e:
            raise SettingsError(f"{path}: default_tolerance must be a number") from e
    if data.get("output_format"):
        fmt = str(data["output_format"]).lower()
        if fmt not in OUTPUT_FORMATS:
            raise SettingsError(f"{path}: output_format must be one of {', '.join(OUTPUT_FORMATS)}")
        settings.output_format = fmt
    if data.get("log_level"):
        settings.log_level = str(data["log_level"]).upper()
    _log.debug("loaded settings from %s", path)
    return settings
