import logging

import pytest

from quire.build import Builder, make_collections
from quire.config import Directories, configure, load_config
from quire.content import ContentItem, load_items
from quire.exceptions import BuildError, ContentError


def read(site, path):
    return (site / "_site" / path).read_text()


def test_build_writes_pages(site):
    result = Builder(load_config(site)).build()
    written = {path.relative_to(site / "_site").as_posix() for path in result.written}

    assert written == {
        "index.html",
        "about/index.html",
        "chapters/index.html",
        "docs/intro/index.html",
        "docs/setup/index.html",
        "en/hello/index.html",
        "fr/hello/index.html",
        "highlight.css",
    }
    assert not (site / "_site/draft").exists()


def test_layouts_chain(site):
    Builder(load_config(site)).build()
    about = read(site, "about/index.html")

    assert "<title>About | Test Site</title>" in about
    assert "<article>" in about
    assert '<h1 id="about-us">About us</h1>' in about


def test_templates_see_data_and_filters(site):
    Builder(load_config(site)).build()
    index = read(site, "index.html")

    assert '<p class="quote">carpe diem</p>' in index or '<p class="quote">memento mori</p>' in index
    assert index.index('aria-current="page">Home</a>') < index.index('<a href="/about/">About</a>')


def test_chapters_collection_is_ordered(site):
    Builder(load_config(site)).build()
    assert read(site, "chapters/index.html") == "/docs/setup/;/docs/intro/;"


def test_i18n_filters(site):
    Builder(load_config(site)).build()
    assert read(site, "en/hello/index.html") == "fr=/fr/hello/|/fr/hello/"


def test_highlight_stylesheet(site):
    Builder(load_config(site)).build()
    assert ".highlight" in read(site, "highlight.css")


def test_passthrough_copy(site, caplog):
    with caplog.at_level(logging.WARNING):
        result = Builder(load_config(site)).build()

    assert result.copied == 1
    assert read(site, "assets/style.css") == "body { color: black; }"
    assert "robots.txt" in caplog.text


def test_stale_output_is_removed(site):
    stale = site / "_site/old/index.html"
    stale.parent.mkdir(parents=True)
    stale.write_text("old")

    Builder(load_config(site)).build()
    assert not stale.exists()


def test_quiet_mode_only_logs_summary(site, caplog):
    with caplog.at_level(logging.INFO, logger="quire"):
        Builder(configure(site, quiet_mode=True)).build()

    messages = [record.getMessage() for record in caplog.records if record.levelno == logging.INFO]
    assert len(messages) == 1
    assert messages[0].startswith("Wrote 8 files, copied 1")


def test_path_prefix(site):
    (site / "views/_includes/nav.html").write_text("{{ '/about/' | url }} {{ 'https://x.org/' | url }}")
    Builder(configure(site, path_prefix="/sub/")).build()

    assert "/sub/about/ https://x.org/" in read(site, "index.html")


def test_live_mode_does_not_write(site):
    builder = Builder(load_config(site), live=True)

    assert "<article>" in builder.render_url("/about/")
    assert builder.render_url("/nope/") is None
    assert not (site / "_site").exists()


def test_reload_drops_deleted_data_files(site):
    builder = Builder(load_config(site), live=True)
    assert builder.env.globals["quotes"] == ["carpe diem", "memento mori"]

    (site / "views/_data/quotes.json").unlink()
    (site / "views/_data/meta.toml").write_text('author = "me"')
    builder.load()

    assert "quotes" not in builder.env.globals
    assert builder.env.globals["meta"] == {"author": "me"}
    assert "site" in builder.env.globals


def test_missing_layout(site):
    (site / "views/broken.md").write_text("---\nlayout: nope\n---\nhi")
    with pytest.raises(BuildError, match="nope"):
        Builder(load_config(site)).build()


def test_self_referencing_layout(site):
    (site / "views/_layouts/loop.html").write_text("---\nlayout: loop\n---\n{{ content }}")
    (site / "views/loop.md").write_text("---\nlayout: loop\n---\nhi")
    with pytest.raises(BuildError, match="itself"):
        Builder(load_config(site)).build()


def test_include_raw_stays_inside_includes(site):
    (site / "views/_includes/snippet.txt").write_text("{{ not rendered }}")
    (site / "views/raw.html").write_text("{{ include_raw('snippet.txt') }}")
    Builder(load_config(site)).build()
    assert read(site, "raw/index.html") == "{{ not rendered }}"

    (site / "views/raw.html").write_text("{{ include_raw('../../quire.toml') }}")
    with pytest.raises(BuildError):
        Builder(load_config(site)).build()


def test_refuses_to_clear_project_root(site):
    with pytest.raises(BuildError):
        Builder(configure(site, dirs=Directories(output="."))).build()


def test_make_collections(site):
    collections = make_collections(load_items(load_config(site)))

    assert [item.url for item in collections["navigation"]] == ["/", "/about/"]
    assert [item.url for item in collections["chapters"]] == ["/docs/setup/", "/docs/intro/"]
    assert [item.url for item in collections["docs"]] == ["/docs/intro/", "/docs/setup/"]
    assert len(collections["all"]) == 7


def test_permalinks_cannot_escape_the_output_directory(site):
    (site / "views/escape.md").write_text("---\npermalink: ../../escaped.html\n---\nhi")
    with pytest.raises(ContentError, match="outside"):
        Builder(load_config(site)).build()

    assert not (site.parent / "escaped.html").exists()


def test_build_item_checks_the_output_path(site):
    builder = Builder(load_config(site))
    item = ContentItem("escape.md", "/../escaped.html")

    with pytest.raises(BuildError, match="outside"):
        builder.build_item(item)
