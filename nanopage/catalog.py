from __future__ import annotations

import enum
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional, Union

from .errors import NanoPageError
from .filedb import FileDB, split_directories, unique
from .pages import Page, PageInfo, make_page, make_page_no_content, to_page_info

logger = logging.getLogger(__name__)


class Mode(enum.Enum):
    NORMAL = "normal"
    PRIVILEGED = "privileged"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Union[str, "Mode"]) -> "Mode":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


@dataclass(frozen=True)
class PageFailure:
    name: str
    error: NanoPageError

    def __str__(self) -> str:
        return f"{self.name}: {self.error}"


@dataclass
class CatalogBuild:
    pages: list[Page] = field(default_factory=list)
    errors: list[PageFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def is_visible(page: Page, mode: Mode) -> bool:
    return mode is Mode.PRIVILEGED or not page.is_hidden


class PageCatalog:
    """All pages of a FileDB, built per page so one broken directory never
    takes the rest of the listing down with it."""

    def __init__(self, db: FileDB, mode: Mode = Mode.NORMAL, workers: int = 1, root: str = "") -> None:
        self.db = db
        self.mode = Mode.parse(mode)
        self.workers = max(1, int(workers or 1))
        self.root = root

    def list_page_directories(self) -> list[str]:
        root = split_directories(self.db.pages_dir)
        depth = len(root)
        names = unique(
            parts[depth]
            for parts in map(split_directories, self.db.get_directories(self.db.pages_dir))
            if len(parts) > depth
        )
        return [name for name in names if not name.startswith(".")]

    def _build_one(self, name: str, content: bool) -> Union[Page, PageFailure]:
        try:
            if content:
                return make_page(self.db, name, self.root)
            return make_page_no_content(self.db, name)
        except NanoPageError as exc:
            logger.warning("Skipping page %s: %s", name, exc)
            return PageFailure(name, exc)

    def build_all(self, content: bool = True) -> CatalogBuild:
        names = self.list_page_directories()
        if self.workers <= 1 or len(names) <= 1:
            results = [self._build_one(name, content) for name in names]
        else:
            with ThreadPoolExecutor(max_workers=min(self.workers, len(names))) as executor:
                results = list(executor.map(lambda name: self._build_one(name, content), names))
        build = CatalogBuild()
        for result in results:
            if isinstance(result, PageFailure):
                build.errors.append(result)
            else:
                build.pages.append(result)
        logger.debug("Built %d pages, %d failed", len(build.pages), len(build.errors))
        return build

    def visible_pages(self, content: bool = True) -> CatalogBuild:
        build = self.build_all(content)
        build.pages = [page for page in build.pages if is_visible(page, self.mode)]
        return build

    def page_infos(self) -> list[PageInfo]:
        return [to_page_info(page) for page in self.visible_pages().pages]

    def find_by_slug(self, slug: str, content: bool = True) -> Optional[Page]:
        for page in self.visible_pages(content=False).pages:
            if page.slug != slug:
                continue
            if not content:
                return page
            name = page.directory.rsplit("/", 1)[-1]
            return make_page(self.db, name, self.root)
        return None

    def to_page_info(self, page: Page) -> PageInfo:
        return to_page_info(page)
