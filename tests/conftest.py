import json
import textwrap
from pathlib import Path

import pytest

SITE_FILES = {
    "quire.toml": """
        passthrough = ["assets", "robots.txt"]

        [site]
        title = "Test Site"
    """,
    "assets/style.css": "body { color: black; }",
    "views/_layouts/base.html": """
        <html><head><title>{{ title }} | {{ site.title }}</title></head>
        <body>{{ content }}</body></html>
    """,
    "views/_layouts/post.html": """
        ---
        layout: base
        ---
        <article>{{ content }}</article>
    """,
    "views/_includes/nav.html": "<nav>{{ collections.all | navigation | navigation_html(page.url) }}</nav>",
    "views/index.html": """
        ---
        title: Home
        layout: base
        navigation:
          key: home
          order: 1
        ---
        {% include "nav.html" %}<p class="quote">{{ quotes | pick }}</p>
    """,
    "views/about.md": """
        ---
        title: About
        layout: post
        navigation:
          key: about
          order: 2
        ---
        # About us

        We write things.
    """,
    "views/docs/intro.md": """
        ---
        title: Introduction
        tags: docs
        chapter:
          sequence: 2
        ---
        Intro.
    """,
    "views/docs/setup.md": """
        ---
        title: Setup
        tags: [docs]
        chapter:
          sequence: 1
        ---
        ```python
        print("hello")
        ```
    """,
    "views/chapters.html": "{% for c in collections.chapters %}{{ c.url }};{% endfor %}",
    "views/en/hello.html": (
        "{% for link in page.url | locale_links %}{{ link.lang }}={{ link.url }}{% endfor %}"
        "|{{ '/en/hello/' | locale_url('fr') }}"
    ),
    "views/fr/hello.html": "bonjour",
    "views/draft.md": """
        ---
        draft: true
        ---
        Not yet.
    """,
}


def write_files(root: Path, files: dict):
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"))


@pytest.fixture
def site(tmp_path):
    write_files(tmp_path, SITE_FILES)
    (tmp_path / "views/_data").mkdir()
    (tmp_path / "views/_data/quotes.json").write_text(json.dumps(["carpe diem", "memento mori"]))
    return tmp_path
