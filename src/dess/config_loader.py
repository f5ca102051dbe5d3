"""Load DessConfig from dess.yaml / dess.toml if present.

Merges file config with CLI kwargs. CLI overrides file.
"""

from __future__ import annotations

import dataclasses
import tomllib
from pathlib import Path

import yaml

from dess._errors import ConfigError
from dess.config import DessConfig

_CONFIG_NAMES = ("dess.yaml", "dess.yml", "dess.toml")

_KNOWN_KEYS = frozenset(
    f.name for f in dataclasses.fields(DessConfig) if f.name != "src_dir"
)


def load_config(src_dir: str | Path, **overrides: object) -> DessConfig:
    """Load DessConfig for *src_dir*, optionally merging a config file.

    Looks for dess.yaml, dess.yml, or dess.toml in the source root.  If
    found, loads and merges with overrides.  Overrides take precedence;
    overrides that are ``None`` are treated as "not given".

    Raises:
        ConfigError: If the source directory is missing or the config file
            is unreadable or names unknown settings.

    """
    root = Path(src_dir)
    if not root.is_dir():
        msg = f"Source directory {root} does not exist or is not a directory"
        raise ConfigError(msg)

    file_config = _read_dess_config(root)
    given = {k: v for k, v in overrides.items() if v is not None}
    merged = {**file_config, **given}

    unknown = sorted(set(merged) - _KNOWN_KEYS)
    if unknown:
        msg = f"Unknown config keys: {', '.join(unknown)}"
        raise ConfigError(msg)

    if "out_dir" in merged and not isinstance(merged["out_dir"], Path):
        merged["out_dir"] = Path(str(merged["out_dir"]))
    if "ignore_names" in merged:
        merged["ignore_names"] = tuple(merged["ignore_names"])  # type: ignore[arg-type]
    return DessConfig(src_dir=root, **merged)  # type: ignore[arg-type]


def _read_dess_config(root: Path) -> dict[str, object]:
    """Read dess config from yaml/toml if present. Returns empty dict otherwise."""
    for name in _CONFIG_NAMES:
        path = root / name
        if not path.is_file():
            continue
        try:
            text = path.read_text(encoding="utf-8")
            if path.suffix == ".toml":
                data = tomllib.loads(text)
            else:
                data = yaml.safe_load(text) or {}
        except (OSError, yaml.YAMLError, tomllib.TOMLDecodeError) as exc:
            msg = f"Failed to read {path}: {exc}"
            raise ConfigError(msg) from exc
        if not isinstance(data, dict):
            msg = f"{path} must contain a mapping"
            raise ConfigError(msg)
        return _flatten_dess_section(data)
    return {}


def _flatten_dess_section(data: dict[str, object]) -> dict[str, object]:
    """Extract dess.* keys into top-level config."""
    result: dict[str, object] = {}
    section = data.get("dess")
    if isinstance(section, dict):
        result.update(section)
    for k, v in data.items():
        if k != "dess":
            result[k] = v
    return result
