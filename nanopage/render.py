from __future__ import annotations

import posixpath
import re
from pathlib import Path
from typing import Mapping, Optional

import markdown
from jinja2 import BaseLoader, Environment, Template, TemplateNotFound, TemplateSyntaxError

from .errors import NotFound, TemplateCompileError
from .filedb import FileDB, normalize_path

# codehilite highlights fenced blocks with Pygments
MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "codehilite"]
IMG_TAG_RE = re.compile(r"<img\b[^>]*>\n?", re.IGNORECASE)
IMG_SRC_RE = re.compile(r'<img\b[^>]*?\bsrc="([^"]+)"', re.IGNORECASE)
LINK_ATTR_RE = re.compile(r'<(img|a|source|video|audio)\b([^>]*?)\b(src|href)="([^"]+)"', re.IGNORECASE)
EMPTY_PARAGRAPH_RE = re.compile(r"<p>\s*</p>\n?")
ABSOLUTE_PREFIXES = ("http://", "https://", "data:", "mailto:", "tel:", "#", "/")


def join_url(root: str, path: str) -> str:
    return f"{root.rstrip('/')}/{path.lstrip('/')}"


def markdown_to_html(text: str) -> str:
    if not text.strip():
        return ""
    return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)


def fix_relative_links(html_text: str, page_dir: str, root: str = "") -> str:
    """Anchor relative ``src``/``href`` references to the page's own directory.

    Pages are served from the file set's routes, so ``img.png`` inside
    ``pages/hello`` becomes ``<root>/pages/hello/img.png``.
    """
    base = normalize_path(page_dir).lstrip("/")

    def repl(match: re.Match) -> str:
        tag, attrs, attr, target = match.groups()
        if target.startswith(ABSOLUTE_PREFIXES) or "://" in target:
            return match.group(0)
        resolved = posixpath.normpath(posixpath.join(base, target))
        return f'<{tag}{attrs}{attr}="{join_url(root, resolved)}"'

    return LINK_ATTR_RE.sub(repl, html_text)


def get_first_image(html_text: str) -> Optional[str]:
    match = IMG_SRC_RE.search(html_text)
    return match.group(1) if match else None


def remove_images(html_text: str) -> str:
    return EMPTY_PARAGRAPH_RE.sub("", IMG_TAG_RE.sub("", html_text))


class FileDBLoader(BaseLoader):
    """Jinja2 loader resolving template names under the FileDB's templates root."""

    def __init__(self, db: FileDB) -> None:
        self.db = db

    def get_source(self, environment: Environment, template: str):
        path = posixpath.join(self.db.templates_dir, template)
        try:
            source = self.db.read_file(path).decode("utf-8")
        except NotFound as exc:
            raise TemplateNotFound(template) from exc
        return source, path, lambda: True


def template_environment(db: Optional[FileDB] = None) -> Environment:
    loader = FileDBLoader(db) if db is not None else None
    return Environment(loader=loader, autoescape=False, keep_trailing_newline=True)


def get_template(db: FileDB, name: str, env: Optional[Environment] = None) -> Template:
    env = env or template_environment(db)
    try:
        return env.get_template(name)
    except TemplateNotFound as exc:
        raise TemplateCompileError(f"Template {name} could not be found") from exc
    except TemplateSyntaxError as exc:
        raise TemplateCompileError(f"Template {name} failed to compile: {exc.message} (line {exc.lineno})") from exc
    except UnicodeDecodeError as exc:
        raise TemplateCompileError(f"Template {name} is not valid UTF-8") from exc


def render_with_template(bindings: Mapping[str, object], text: str) -> str:
    """Compile ``text`` as an ad hoc template and render it with ``bindings``."""
    try:
        template = template_environment().from_string(text)
    except TemplateSyntaxError as exc:
        raise TemplateCompileError(f"Template content failed to compile: {exc.message}") from exc
    return template.render(**bindings)


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
