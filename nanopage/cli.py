from __future__ import annotations

import argparse
import datetime as dt
import logging
import posixpath
import shutil
import sys
import time
from pathlib import Path

from .cache import hash_file_db, load_lock, write_lock
from .catalog import CatalogBuild, Mode, PageCatalog, PageFailure
from .config import load_config, parse_bool, parse_int, resolve_relative
from .errors import NanoPageError
from .filedb import FileDB, load_file_db
from .pages import page_infos_json, render_page, to_page_info
from .render import write_bytes, write_text

LOCK_VERSION = 1


def clean_output_dir(output_dir: Path, project_root: Path) -> None:
    if not output_dir.exists():
        return
    output_resolved = output_dir.resolve()
    root_resolved = project_root.resolve()
    if output_resolved == root_resolved:
        print("Refusing to clean project root.", file=sys.stderr)
        sys.exit(1)
    if not output_resolved.is_relative_to(root_resolved):
        print("Refusing to clean output directory outside project root.", file=sys.stderr)
        sys.exit(1)
    shutil.rmtree(output_dir)


def report_failures(build: CatalogBuild) -> None:
    for failure in build.errors:
        print(f"Page {failure.name} failed: {failure.error}", file=sys.stderr)


def write_site(db: FileDB, build: CatalogBuild, output_dir: Path) -> int:
    """Write every route and rendered page; pages that fail to render move to ``build.errors``."""
    for route, content in db.static_routes():
        write_bytes(output_dir / route.lstrip("/"), content)
    rendered = []
    for page in build.pages:
        try:
            html_doc = render_page(page)
        except NanoPageError as exc:
            build.errors.append(PageFailure(posixpath.basename(page.directory), exc))
            continue
        write_text(output_dir / page.slug / "index.html", html_doc)
        rendered.append(page)
    build.pages = rendered
    infos = [to_page_info(page) for page in rendered]
    write_text(output_dir / "pages.json", page_infos_json(infos))
    return len(rendered)


def build_site(args: argparse.Namespace) -> bool:
    """Build the output tree; returns False when the build was skipped."""
    content_dir = Path(args.content)
    output_dir = Path(args.output)
    if not content_dir.exists():
        print(f"Content directory not found: {content_dir}", file=sys.stderr)
        sys.exit(1)

    db = load_file_db(content_dir, args.pages_dir, args.templates_dir, args.static_dir)
    lock_path = Path(args.lock_file)
    digest = hash_file_db(db)
    previous = load_lock(lock_path) if args.incremental else {}
    if (
        args.incremental
        and output_dir.exists()
        and previous.get("version") == LOCK_VERSION
        and previous.get("content_hash") == digest
        and previous.get("mode") == args.mode.value
    ):
        print("No changes detected. Build skipped.")
        return False

    if args.clean:
        clean_output_dir(output_dir, Path.cwd())

    catalog = PageCatalog(db, mode=args.mode, workers=args.build_workers)
    build = catalog.visible_pages()
    written = write_site(db, build, output_dir)
    report_failures(build)
    print(f"Rendered {written} pages, {len(build.errors)} failed.")
    if not build.ok:
        # drop the lock so the next run rebuilds and reports the failures again
        lock_path.unlink(missing_ok=True)
        sys.exit(1)

    write_lock(
        lock_path,
        {
            "version": LOCK_VERSION,
            "built_at": dt.datetime.now().replace(microsecond=0).isoformat(),
            "content_hash": digest,
            "mode": args.mode.value,
        },
    )
    return True


def list_pages(args: argparse.Namespace) -> None:
    db = load_file_db(Path(args.content), args.pages_dir, args.templates_dir, args.static_dir)
    catalog = PageCatalog(db, mode=args.mode, workers=args.build_workers)
    build = catalog.visible_pages(content=False)
    for page in build.pages:
        marker = " (hidden)" if page.is_hidden else ""
        print(f"{page.slug}\t{page.title}{marker}")
    report_failures(build)
    if not build.ok:
        sys.exit(1)


def main() -> None:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument(
        "--config",
        default="site.toml",
        help="Path to site config file (TOML/YAML/JSON).",
    )
    pre_args, _ = pre_parser.parse_known_args()
    config_path = Path(pre_args.config)
    config = load_config(config_path)

    def cfg_str(key: str, default: str) -> str:
        value = config.get(key)
        return default if value is None else str(value)

    def cfg_path(key: str, default: str) -> str:
        value = config.get(key)
        return default if value is None else str(resolve_relative(config_path, str(value)))

    def cfg_bool(key: str, default: bool) -> bool:
        value = config.get(key)
        return default if value is None else parse_bool(value)

    parser = argparse.ArgumentParser(description="Build a site from a nanoPage content tree.")
    parser.add_argument("--config", default=pre_args.config, help="Path to site config file (TOML/YAML/JSON).")
    parser.add_argument("--content", default=cfg_path("content", "content"), help="Content root directory.")
    parser.add_argument("--output", default=cfg_path("output", "dist"), help="Output directory for the site.")
    parser.add_argument("--pages-dir", default=cfg_str("pages_dir", "pages"), help="Pages directory name.")
    parser.add_argument(
        "--templates-dir", default=cfg_str("templates_dir", "templates"), help="Templates directory name."
    )
    parser.add_argument("--static-dir", default=cfg_str("static_dir", "static"), help="Static assets directory name.")
    parser.add_argument(
        "--mode",
        type=Mode.parse,
        choices=list(Mode),
        default=Mode.parse(cfg_str("mode", "normal")),
        help="normal hides pages whose slug starts with '_' or '.'; privileged shows them.",
    )
    parser.add_argument(
        "--build-workers",
        default=parse_int(config.get("build_workers"), 1),
        type=int,
        help="Number of worker threads building pages.",
    )
    parser.add_argument(
        "--clean",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("clean", False),
        help="Remove previously generated files before building.",
    )
    parser.add_argument(
        "--incremental",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("incremental", True),
        help="Skip the build when the content tree is unchanged.",
    )
    parser.add_argument(
        "--lock-file",
        default=cfg_path("lock_file", "build.lock.json"),
        help="Path to build lock JSON.",
    )
    parser.add_argument("--list", action="store_true", help="List pages instead of building.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if args.list:
        list_pages(args)
        return
    start = time.perf_counter()
    built = build_site(args)
    elapsed = time.perf_counter() - start
    print(f"Build completed in {elapsed:.2f}s.")
    if built:
        print(f"Site generated in: {args.output}")
