from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Union

from .errors import NotFound

logger = logging.getLogger(__name__)

FileEntry = tuple[str, bytes]


def split_directories(path: str) -> list[str]:
    """Split a path into its segments, dropping empty ones.

    A leading ``/`` is kept as a segment of its own so that absolute and
    relative paths never compare equal.
    """
    parts = [part for part in path.split("/") if part]
    if path.startswith("/"):
        return ["/", *parts]
    return parts


def join_segments(parts: list[str]) -> str:
    if parts and parts[0] == "/":
        return "/" + "/".join(parts[1:])
    return "/".join(parts)


def normalize_path(path: str) -> str:
    return join_segments(split_directories(path))


def is_sub_dir(p1: list[str], p2: list[str]) -> bool:
    """True when ``p1`` equals ``p2`` or is nested below it (segment lists)."""
    if len(p2) > len(p1):
        return False
    return p1[: len(p2)] == p2


def unique(items: Iterable) -> list:
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def directories_under(paths: Iterable[str], under: str) -> list[str]:
    root = split_directories(under)
    parents = [split_directories(path)[:-1] for path in paths]
    dirs = unique(parent for parent in parents if parent)
    return [join_segments(d) for d in dirs if is_sub_dir(d, root)]


@dataclass(frozen=True)
class FileDB:
    """Immutable in-memory file set the whole engine reads from.

    ``files`` keeps the insertion order of the source; duplicated paths are
    allowed and the first one wins on lookup.
    """

    files: tuple[FileEntry, ...]
    pages_dir: str = "pages"
    templates_dir: str = "templates"

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Union[bytes, str]], **kwargs) -> "FileDB":
        files = []
        for path, content in mapping.items():
            if isinstance(content, str):
                content = content.encode("utf-8")
            files.append((path, content))
        return cls(files=tuple(files), **kwargs)

    @property
    def paths(self) -> list[str]:
        return [path for path, _ in self.files]

    def read_file(self, path: str) -> bytes:
        wanted = normalize_path(path)
        for stored, content in self.files:
            if normalize_path(stored) == wanted:
                return content
        raise NotFound(path)

    def find_files(self, ext: str, directory: str) -> list[str]:
        """Stored paths directly inside ``directory`` whose extension is ``ext``."""
        wanted = normalize_path(directory)
        found = []
        for path, _ in self.files:
            parent, name = posixpath.split(path)
            if normalize_path(parent) != wanted:
                continue
            if posixpath.splitext(name)[1] == ext:
                found.append(path)
        return found

    def get_directories(self, under: str) -> list[str]:
        return directories_under(self.paths, under)

    def static_routes(self) -> list[FileEntry]:
        routes = []
        for path, content in self.files:
            route = normalize_path(path)
            if not route.startswith("/"):
                route = "/" + route
            routes.append((route, content))
        return routes


def _read_tree(root: Path, prefix: str) -> list[FileEntry]:
    if not root.exists():
        logger.info("Content directory missing, skipped: %s", root)
        return []
    entries = []
    for path in sorted((p for p in root.rglob("*") if p.is_file()), key=lambda p: p.as_posix()):
        rel = path.relative_to(root).as_posix()
        entries.append((posixpath.join(prefix, rel) if prefix else rel, path.read_bytes()))
    return entries


def load_file_db(
    content_root: Path,
    pages_dir: str = "pages",
    templates_dir: str = "templates",
    static_dir: str = "static",
) -> FileDB:
    """Read a content tree from disk once.

    Pages and templates keep their directory name as prefix; static assets
    are mounted at the root of the file set.
    """
    content_root = Path(content_root)
    files = (
        _read_tree(content_root / pages_dir, pages_dir)
        + _read_tree(content_root / templates_dir, templates_dir)
        + _read_tree(content_root / static_dir, "")
    )
    logger.info("Loaded %d files from %s", len(files), content_root)
    return FileDB(files=tuple(files), pages_dir=pages_dir, templates_dir=templates_dir)
