from __future__ import annotations

import json
import sys
import tomllib
from pathlib import Path

import yaml


def load_config(path: Path) -> dict:
    """Read the site config (TOML, YAML or JSON by suffix); missing file means defaults."""
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            print(f"Invalid TOML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
    elif suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            print(f"Invalid YAML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
        if data is None:
            return {}
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            print(f"Invalid JSON in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
    if not isinstance(data, dict):
        print(f"Config must be a mapping: {path}", file=sys.stderr)
        sys.exit(1)
    return data


def parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return False


def parse_int(value: object, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def resolve_relative(config_path: Path, value: str) -> Path:
    """Paths in the config file are relative to the file, not the working directory."""
    path = Path(value)
    if path.is_absolute():
        return path
    return config_path.resolve().parent / path
