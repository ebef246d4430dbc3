import pytest

from quire.config import load_config
from quire.content import (
    ContentItem,
    default_url,
    detect_language,
    load_global_data,
    load_items,
    resolve_url,
    tag_collections,
)
from quire.exceptions import ContentError


@pytest.mark.parametrize("input_path, url", [
    ("index.md", "/"),
    ("about.md", "/about/"),
    ("docs/index.html", "/docs/"),
    ("docs/intro.jinja", "/docs/intro/"),
])
def test_default_url(input_path, url):
    assert default_url(input_path) == url


def test_permalinks():
    assert resolve_url("feed.html", "feed.xml") == "/feed.xml"
    assert resolve_url("about.md", "/who/") == "/who/"
    assert resolve_url("about.md", False) is None

    with pytest.raises(ContentError):
        resolve_url("about.md", 42)

    with pytest.raises(ContentError, match="outside"):
        resolve_url("about.md", "../../escaped.html")

    with pytest.raises(ContentError):
        resolve_url("about.md", "/docs/../../escaped/")


def test_output_paths():
    assert ContentItem("index.md", "/").output_path == "index.html"
    assert ContentItem("about.md", "/about/").output_path == "about/index.html"
    assert ContentItem("feed.html", "/feed.xml").output_path == "feed.xml"
    assert ContentItem("hidden.md", None).output_path is None


def test_detect_language():
    assert detect_language("fr/about.md", "en") == "fr"
    assert detect_language("pt-br/about.md", "en") == "pt-br"
    assert detect_language("docs/about.md", "en") == "en"
    assert detect_language("de.md", "en") == "en"


def test_detect_language_with_configured_languages():
    assert detect_language("js/notes.md", "en") == "js"
    assert detect_language("js/notes.md", "en", ("en", "fr")) == "en"
    assert detect_language("FR/about.md", "en", ("en", "fr")) == "fr"


def test_load_items(site):
    items = load_items(load_config(site))
    paths = [item.input_path for item in items]

    assert paths == sorted(paths)
    assert "draft.md" not in paths
    assert not any(path.startswith("_") for path in paths)

    about = next(item for item in items if item.input_path == "about.md")
    assert about.url == "/about/"
    assert about.title == "About"
    assert about.layout == "post"
    assert about.template_type == "markdown"
    assert about.content.startswith("# About us")

    hello = next(item for item in items if item.input_path == "fr/hello.html")
    assert hello.lang == "fr"
    assert hello.template_type == "jinja"


def test_load_items_with_configured_languages(site):
    (site / "quire.toml").write_text('[i18n]\nlanguages = ["en", "fr"]\n')
    (site / "views/js").mkdir()
    (site / "views/js/notes.md").write_text("Notes.")

    langs = {item.input_path: item.lang for item in load_items(load_config(site))}
    assert langs["js/notes.md"] == "en"
    assert langs["fr/hello.html"] == "fr"


def test_load_items_with_drafts(site):
    items = load_items(load_config(site), include_drafts=True)
    assert "draft.md" in [item.input_path for item in items]


def test_duplicate_urls_are_rejected(site):
    (site / "views/about.html").write_text("again")
    with pytest.raises(ContentError, match="/about/"):
        load_items(load_config(site))


def test_missing_input_directory(tmp_path):
    with pytest.raises(ContentError):
        load_items(load_config(tmp_path))


def test_global_data(site):
    (site / "views/_data/meta.toml").write_text('author = "me"')
    data = load_global_data(load_config(site))
    assert data == {"meta": {"author": "me"}, "quotes": ["carpe diem", "memento mori"]}


def test_broken_data_file(site):
    (site / "views/_data/broken.json").write_text("{")
    with pytest.raises(ContentError, match="broken.json"):
        load_global_data(load_config(site))


def test_tag_collections(site):
    collections = tag_collections(load_items(load_config(site)))
    assert [item.input_path for item in collections["docs"]] == ["docs/intro.md", "docs/setup.md"]
