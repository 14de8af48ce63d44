from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

import yaml

from .errors import SchemaError

PREVIEW_DELIMITER = b"---"
DEFAULT_DESCRIPTION = "This is a nanoPage page"
DEFAULT_AUTHOR = "nanoPage"
DEFAULT_KEYWORDS = ("nanoPage", "Website", "CMS", "Content management system", "Python")

SLUG_SEPARATOR_RE = re.compile(r"[\W_]+", re.UNICODE)
STRING_FIELDS = ("slug", "description", "author")
LIST_FIELDS = ("keywords", "tags", "categories")


@dataclass(frozen=True)
class PageConfig:
    title: str
    slug: Optional[str] = None
    keywords: Optional[tuple[str, ...]] = None
    tags: Optional[tuple[str, ...]] = None
    categories: Optional[tuple[str, ...]] = None
    description: Optional[str] = None
    author: Optional[str] = None


def make_slug(text: str) -> Optional[str]:
    slug = SLUG_SEPARATOR_RE.sub("-", text.lower()).strip("-")
    return slug or None


def parse_string_list(key: str, value: object) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise SchemaError(f"'{key}' must be a list of strings")
    for item in value:
        if not isinstance(item, str):
            raise SchemaError(f"'{key}' must be a list of strings, got item {item!r}")
    return tuple(value)


def parse_page_config(document: Union[bytes, str]) -> PageConfig:
    """Decode a page's ``config.yaml`` (JSON objects are valid YAML too)."""
    if isinstance(document, bytes):
        try:
            document = document.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SchemaError(f"Config is not valid UTF-8: {exc}") from exc
    try:
        data = yaml.safe_load(document)
    except yaml.YAMLError as exc:
        raise SchemaError(f"Invalid YAML in page config: {exc}") from exc
    if not isinstance(data, dict):
        raise SchemaError("Page config must be a mapping")

    title = data.get("title")
    if title is None:
        raise SchemaError("Page config is missing required key 'title'")
    if not isinstance(title, str):
        raise SchemaError(f"'title' must be a string, got {type(title).__name__}")

    fields: dict = {"title": title}
    for key in STRING_FIELDS:
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            raise SchemaError(f"'{key}' must be a string, got {type(value).__name__}")
        fields[key] = value
    for key in LIST_FIELDS:
        value = data.get(key)
        if value is None:
            continue
        fields[key] = parse_string_list(key, value)
    slug = fields.get("slug")
    if slug is not None and (slug in (".", "..") or "/" in slug or "\\" in slug):
        raise SchemaError(f"'slug' must be a single path segment, got {slug!r}")
    return PageConfig(**fields)


def read_page_config(db, path: str) -> PageConfig:
    return parse_page_config(db.read_file(path))


def keywords_string(config: PageConfig) -> str:
    """Comma-joined keywords for meta tags; falls back to the default branding keywords."""
    if config.keywords is None:
        return ",".join(DEFAULT_KEYWORDS)
    return ",".join(config.keywords)


def description_string(config: PageConfig) -> str:
    return config.description if config.description is not None else DEFAULT_DESCRIPTION


def author_string(config: PageConfig) -> str:
    return config.author if config.author is not None else DEFAULT_AUTHOR


def split_preview_content(data: bytes) -> tuple[bytes, bytes]:
    """Split markdown source on the first ``---`` into (preview, content).

    Without a delimiter the whole file is content and the preview is empty.
    """
    preview, found, content = data.partition(PREVIEW_DELIMITER)
    if not found:
        return b"", data
    return preview, content
