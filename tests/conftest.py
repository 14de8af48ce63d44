import pytest

from nanopage.filedb import FileDB

PASSTHROUGH = "{{ content }}"


def page_files(name, markdown, config="title: Hello\n", md_name=None):
    md_name = md_name or f"{name}.md"
    return {
        f"pages/{name}/{md_name}": markdown,
        f"pages/{name}/config.yaml": config,
    }


@pytest.fixture
def hello_db():
    files = page_files("hello", "Preview text---# Hello\nWorld", config='{title: "Hello"}')
    files["templates/hello.html"] = PASSTHROUGH
    return FileDB.from_mapping(files)


@pytest.fixture
def site_db():
    files = {}
    files.update(page_files("hello", "Intro---# Hello\nWorld"))
    files.update(page_files("draft", "Secret---Body", config="title: Draft\nslug: _draft\n"))
    files.update(page_files("broken", "No config here"))
    del files["pages/broken/config.yaml"]
    files.update(page_files("about", "About---Us", config="title: About Us\ntags: [team]\n", md_name="index.md"))
    files["templates/hello.html"] = "<h1>{{ title }}</h1>{{ content }}"
    files["templates/draft.html"] = PASSTHROUGH
    files["templates/broken.html"] = PASSTHROUGH
    files["templates/index.html"] = "<article>{{ content }}</article>"
    files["css/site.css"] = "body {}"
    return FileDB.from_mapping(files)
