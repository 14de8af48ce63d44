from __future__ import annotations

import json
import logging
import posixpath
from dataclasses import dataclass, replace
from typing import Callable, Optional

from jinja2 import Template, TemplateError

from .content import (
    PageConfig,
    author_string,
    description_string,
    keywords_string,
    make_slug,
    read_page_config,
    split_preview_content,
)
from .errors import AmbiguousMarkdown, SchemaError, SlugDerivationError, TemplateCompileError, ZeroMarkdown
from .filedb import FileDB
from .render import (
    fix_relative_links,
    get_first_image,
    get_template,
    markdown_to_html,
    remove_images,
)

logger = logging.getLogger(__name__)

MARKDOWN_EXT = ".md"
TEMPLATE_EXT = ".html"
CONFIG_FILE = "config.yaml"
PLACEHOLDER_IMAGE = "assets/img/placeholder-320x160.png"


@dataclass(frozen=True)
class Page:
    config: PageConfig
    directory: str
    content: str = ""
    preview: str = ""
    preview_image: str = PLACEHOLDER_IMAGE
    template: Optional[Template] = None

    @property
    def title(self) -> str:
        return self.config.title

    @property
    def slug(self) -> str:
        """Explicit slug from the config, otherwise derived from the title."""
        if self.config.slug:
            return self.config.slug
        slug = make_slug(self.config.title)
        if slug is None:
            raise SlugDerivationError(f"Cannot create slug for {self.directory}", self.directory)
        return slug

    @property
    def keywords(self) -> list[str]:
        return list(self.config.keywords or ())

    @property
    def keywords_string(self) -> str:
        return keywords_string(self.config)

    @property
    def tags(self) -> list[str]:
        return list(self.config.tags or ())

    @property
    def categories(self) -> list[str]:
        return list(self.config.categories or ())

    @property
    def description(self) -> str:
        return description_string(self.config)

    @property
    def author(self) -> str:
        return author_string(self.config)

    @property
    def is_hidden(self) -> bool:
        return self.slug[0] in "_."

    def bindings(self) -> dict:
        return {
            "title": self.title,
            "slug": self.slug,
            "author": self.author,
            "description": self.description,
            "keywords": self.keywords_string,
            "tags": self.tags,
            "categories": self.categories,
            "content": self.content,
            "preview": self.preview,
            "preview_image": self.preview_image,
        }


@dataclass(frozen=True)
class PageInfo:
    """Reduced view of a page for listing cards; safe to hand to clients."""

    title: str
    slug: str
    author: str
    preview: str
    tags: tuple[str, ...]
    categories: tuple[str, ...]
    image: str

    @classmethod
    def from_page(cls, page: Page) -> "PageInfo":
        return cls(
            title=page.title,
            slug=page.slug,
            author=page.author,
            preview=page.preview,
            tags=tuple(page.tags),
            categories=tuple(page.categories),
            image=page.preview_image,
        )

    def to_json(self) -> dict:
        return {
            "ti": self.title,
            "sl": self.slug,
            "au": self.author,
            "pr": self.preview,
            "ts": list(self.tags),
            "cs": list(self.categories),
            "im": self.image,
        }


def to_page_info(page: Page) -> PageInfo:
    return PageInfo.from_page(page)


def page_infos_json(infos: list[PageInfo]) -> str:
    return json.dumps([info.to_json() for info in infos], indent=2, ensure_ascii=True)


def render_preview_with(render: Callable[[str, PageInfo], str], info: PageInfo) -> PageInfo:
    return replace(info, preview=render(info.preview, info))


def page_directory(db: FileDB, name: str) -> str:
    return posixpath.join(db.pages_dir, name)


def find_markdown_file(db: FileDB, page_dir: str) -> str:
    md_files = db.find_files(MARKDOWN_EXT, page_dir)
    if not md_files:
        raise ZeroMarkdown(f"No .md files found in {page_dir}", page_dir)
    if len(md_files) > 1:
        raise AmbiguousMarkdown(f"There are multiple .md files in {page_dir}", page_dir, tuple(md_files))
    return md_files[0]


def template_name_for(md_path: str) -> str:
    """The markdown filename picks the template: ``index.md`` renders with ``index.html``."""
    name = posixpath.basename(md_path)
    return posixpath.splitext(name)[0] + TEMPLATE_EXT


def _read_config(db: FileDB, page_dir: str) -> PageConfig:
    try:
        return read_page_config(db, posixpath.join(page_dir, CONFIG_FILE))
    except SchemaError as exc:
        exc.page = exc.page or page_dir
        raise


def _validated(page: Page) -> Page:
    # raises SlugDerivationError so bulk builds can report it per page
    page.slug
    return page


def make_page_no_content(db: FileDB, name: str) -> Page:
    """Metadata-only page: no template, no markdown conversion."""
    page_dir = page_directory(db, name)
    find_markdown_file(db, page_dir)
    config = _read_config(db, page_dir)
    return _validated(Page(config=config, directory=page_dir))


def make_page(db: FileDB, name: str, root: str = "") -> Page:
    page_dir = page_directory(db, name)
    md_path = find_markdown_file(db, page_dir)

    template_name = template_name_for(md_path)
    try:
        template = get_template(db, template_name)
    except TemplateCompileError as exc:
        exc.page = page_dir
        raise

    source = db.read_file(md_path)
    raw_preview, raw_content = split_preview_content(source)
    logger.debug("Building %s with template %s", page_dir, template_name)
    content = fix_relative_links(markdown_to_html(raw_content.decode("utf-8", errors="replace")), page_dir, root)
    preview = fix_relative_links(markdown_to_html(raw_preview.decode("utf-8", errors="replace")), page_dir, root)
    preview_image = get_first_image(preview) or PLACEHOLDER_IMAGE
    preview = remove_images(preview)

    config = _read_config(db, page_dir)
    page = Page(
        config=config,
        directory=page_dir,
        content=content,
        preview=preview,
        preview_image=preview_image,
        template=template,
    )
    return _validated(page)


def render_page(page: Page, **extra: object) -> str:
    if page.template is None:
        raise TemplateCompileError(f"Page {page.directory} was built without a template", page.directory)
    bindings = page.bindings()
    bindings.update(extra)
    try:
        return page.template.render(**bindings)
    except TemplateError as exc:
        # includes and extends are only resolved while rendering
        raise TemplateCompileError(f"Page {page.directory} failed to render: {exc}", page.directory) from exc
