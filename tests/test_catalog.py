"""Tests for nanopage.catalog and the catalog cache."""

import pytest

from conftest import PASSTHROUGH, page_files
from nanopage.cache import CatalogCache, hash_file_db
from nanopage.catalog import Mode, PageCatalog, is_visible
from nanopage.errors import AmbiguousMarkdown, NotFound, SchemaError, TemplateCompileError, ZeroMarkdown
from nanopage.filedb import FileDB


def slugs(pages):
    return [page.slug for page in pages]


class TestListPageDirectories:
    def test_names_in_first_seen_order(self, site_db):
        assert PageCatalog(site_db).list_page_directories() == ["hello", "draft", "broken", "about"]

    def test_hidden_directories_are_never_candidates(self):
        db = FileDB.from_mapping(
            {
                "pages/.git/config": "",
                "pages/a/a.md": "",
                "pages/readme.txt": "",
                "pages/b/img/x.png": "",
            }
        )
        assert PageCatalog(db, mode=Mode.PRIVILEGED).list_page_directories() == ["a", "b"]

    def test_custom_pages_root(self):
        db = FileDB.from_mapping({"content/pages/a/a.md": ""}, pages_dir="content/pages")
        assert PageCatalog(db).list_page_directories() == ["a"]


class TestBuildAll:
    def test_broken_page_is_reported_not_fatal(self, site_db):
        build = PageCatalog(site_db).build_all()
        assert slugs(build.pages) == ["hello", "_draft", "about-us"]
        assert [failure.name for failure in build.errors] == ["broken"]
        assert isinstance(build.errors[0].error, NotFound)
        assert not build.ok

    def test_failure_message_names_page(self, site_db):
        build = PageCatalog(site_db).build_all()
        assert str(build.errors[0]).startswith("broken: ")

    def test_metadata_only(self, site_db):
        build = PageCatalog(site_db).build_all(content=False)
        assert all(page.template is None for page in build.pages)
        assert slugs(build.pages) == ["hello", "_draft", "about-us"]

    def test_workers_preserve_order(self, site_db):
        build = PageCatalog(site_db, workers=4).build_all()
        assert slugs(build.pages) == ["hello", "_draft", "about-us"]
        assert [failure.name for failure in build.errors] == ["broken"]

    def test_schema_errors_are_collected(self):
        files = page_files("a", "x", config="slug: a\n")
        files.update(page_files("b", "y"))
        files["templates/a.html"] = PASSTHROUGH
        files["templates/b.html"] = PASSTHROUGH
        build = PageCatalog(FileDB.from_mapping(files)).build_all()
        assert slugs(build.pages) == ["hello"]
        assert isinstance(build.errors[0].error, SchemaError)

    def test_page_errors_are_collected_by_kind(self):
        files = page_files("good", "A---B", config="title: Good\n")
        files.update(page_files("malformed", "x", config="title: Malformed\n"))
        files.update(page_files("untemplated", "x", config="title: Untemplated\n"))
        files["pages/empty/config.yaml"] = "title: Empty\n"
        files.update(page_files("twice", "x", config="title: Twice\n"))
        files["pages/twice/other.md"] = "y"
        files["templates/good.html"] = PASSTHROUGH
        files["templates/malformed.html"] = "{% for %}"
        files["templates/twice.html"] = PASSTHROUGH

        build = PageCatalog(FileDB.from_mapping(files)).build_all()

        assert slugs(build.pages) == ["good"]
        kinds = {failure.name: type(failure.error) for failure in build.errors}
        assert kinds == {
            "malformed": TemplateCompileError,
            "untemplated": TemplateCompileError,
            "empty": ZeroMarkdown,
            "twice": AmbiguousMarkdown,
        }
        assert not build.ok

    def test_page_errors_are_collected_with_workers(self):
        files = page_files("good", "A---B", config="title: Good\n")
        files["pages/empty/config.yaml"] = "title: Empty\n"
        files["templates/good.html"] = PASSTHROUGH
        build = PageCatalog(FileDB.from_mapping(files), workers=2).build_all()
        assert slugs(build.pages) == ["good"]
        assert [failure.name for failure in build.errors] == ["empty"]
        assert isinstance(build.errors[0].error, ZeroMarkdown)


class TestVisiblePages:
    def test_normal_mode_hides_drafts(self, site_db):
        build = PageCatalog(site_db).visible_pages()
        assert slugs(build.pages) == ["hello", "about-us"]

    def test_privileged_mode_shows_everything(self, site_db):
        build = PageCatalog(site_db, mode=Mode.PRIVILEGED).visible_pages()
        assert slugs(build.pages) == ["hello", "_draft", "about-us"]

    def test_is_visible(self, site_db):
        draft = PageCatalog(site_db).build_all(content=False).pages[1]
        assert not is_visible(draft, Mode.NORMAL)
        assert is_visible(draft, Mode.PRIVILEGED)


class TestLookups:
    def test_page_infos(self, site_db):
        infos = PageCatalog(site_db).page_infos()
        assert [info.slug for info in infos] == ["hello", "about-us"]
        assert infos[0].preview == "<p>Intro</p>"
        assert infos[1].tags == ("team",)

    def test_find_by_slug(self, site_db):
        page = PageCatalog(site_db).find_by_slug("about-us")
        assert page is not None
        assert page.template is not None
        assert page.content == "<p>Us</p>"

    def test_find_by_slug_respects_mode(self, site_db):
        assert PageCatalog(site_db).find_by_slug("_draft") is None
        assert PageCatalog(site_db, mode=Mode.PRIVILEGED).find_by_slug("_draft") is not None

    def test_find_by_slug_metadata_only(self, site_db):
        page = PageCatalog(site_db).find_by_slug("hello", content=False)
        assert page.template is None


class TestMode:
    @pytest.mark.parametrize("value", ["privileged", "PRIVILEGED", " Privileged ", Mode.PRIVILEGED])
    def test_parse(self, value):
        assert Mode.parse(value) is Mode.PRIVILEGED

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            Mode.parse("admin")


class TestCatalogCache:
    def test_builds_once(self, site_db):
        cache = CatalogCache(PageCatalog(site_db))
        assert cache.get() is cache.get()

    def test_reload_picks_up_new_content(self, site_db):
        cache = CatalogCache(PageCatalog(site_db))
        first = cache.get()
        files = page_files("new", "A---B", config="title: New\n")
        files["templates/new.html"] = PASSTHROUGH
        new_db = FileDB.from_mapping(files)
        cache.reload(new_db)
        assert cache.get() is not first
        assert slugs(cache.get().pages) == ["new"]
        assert cache.digest == hash_file_db(new_db)

    def test_reload_keeps_mode(self, site_db):
        cache = CatalogCache(PageCatalog(site_db, mode=Mode.PRIVILEGED))
        cache.reload(site_db)
        assert "_draft" in slugs(cache.get().pages)

    def test_digest_depends_on_content(self):
        a = FileDB.from_mapping({"x": b"1"})
        b = FileDB.from_mapping({"x": b"2"})
        assert hash_file_db(a) != hash_file_db(b)
        assert hash_file_db(a) == hash_file_db(FileDB.from_mapping({"x": b"1"}))
