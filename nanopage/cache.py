from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Optional

from .catalog import CatalogBuild, PageCatalog
from .filedb import FileDB

logger = logging.getLogger(__name__)


def hash_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def hash_file_db(db: FileDB) -> str:
    digest = hashlib.sha256()
    for path, content in db.files:
        digest.update(path.encode("utf-8"))
        digest.update(b"\0")
        digest.update(content)
        digest.update(b"\0")
    return digest.hexdigest()


class CatalogCache:
    """Memoizes a full catalog build until ``reload`` is called.

    The file set never changes under a running process, so the only way to
    pick up new content is an explicit reload with a freshly loaded FileDB.
    """

    def __init__(self, catalog: PageCatalog) -> None:
        self.catalog = catalog
        self._build: Optional[CatalogBuild] = None
        self._digest: Optional[str] = None

    @property
    def digest(self) -> str:
        if self._digest is None:
            self._digest = hash_file_db(self.catalog.db)
        return self._digest

    def get(self) -> CatalogBuild:
        if self._build is None:
            self._build = self.catalog.visible_pages()
        return self._build

    def reload(self, db: Optional[FileDB] = None) -> None:
        if db is not None:
            previous = self.digest
            self.catalog = PageCatalog(db, self.catalog.mode, self.catalog.workers, self.catalog.root)
            self._digest = None
            if self.digest == previous:
                logger.info("Reloaded content is unchanged (%s)", previous[:12])
        self._build = None


def load_lock(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning("Ignoring unreadable lock file %s", path)
        return {}


def write_lock(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=True), encoding="utf-8")
