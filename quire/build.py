import functools
import logging
import shutil
import time
from dataclasses import dataclass, field
from mimetypes import types_map as mimetype_map
from pathlib import Path
from typing import Dict, List, Tuple, TypeAlias

from quire.config import SiteConfig
from quire.content import ContentItem, load_global_data, load_items, tag_collections
from quire.exceptions import BuildError
from quire.filters import pick
from quire.i18n import I18n
from quire.markdown import HIGHLIGHT_STYLESHEET, highlight_css, render_markdown
from quire.navigation import breadcrumbs, navigation_entries, navigation_html
from quire.sorts import by_chapter_sequence, by_nav_order, nested_value, sort_items

import frontmatter
import minify
from jinja2 import ChoiceLoader
from jinja2 import Environment
from jinja2 import FileSystemLoader
from jinja2 import select_autoescape
from markupsafe import Markup

logger = logging.getLogger(__name__)

Collections: TypeAlias = Dict[str, List[ContentItem]]

LAYOUT_SUFFIXES = (".html", ".jinja")
MINIFIABLE = {"text/html", "text/css", "text/javascript", "application/javascript", "image/svg+xml",
              "application/json", "text/xml", "application/xml"}


class FrontMatterLoader(FileSystemLoader):
    # Layouts may declare their own front matter (to chain into another layout), jinja must never see it.
    def get_source(self, environment, template):
        source, filename, uptodate = super().get_source(environment, template)
        return frontmatter.loads(source).content, filename, uptodate


@dataclass
class BuildResult:
    written: List[Path] = field(default_factory=list)
    copied: int = 0


def make_collections(items: List[ContentItem]) -> Collections:
    """
    Named, ordered views of the content handed to every template as `collections`:
        all         every item, in input path order
        <tag>       every item listing <tag> in its `tags`
        navigation  items with `navigation` data, by `navigation.order`
        chapters    items with `chapter` data, by `chapter.sequence`
    """
    collections = tag_collections(items)
    collections["all"] = list(items)
    collections["navigation"] = sort_items(
        [item for item in items if nested_value(item, ("data", "navigation")) is not None],
        by_nav_order,
    )
    collections["chapters"] = sort_items(
        [item for item in items if nested_value(item, ("data", "chapter")) is not None],
        by_chapter_sequence,
    )
    return collections


class Builder:
    def __init__(self, config: SiteConfig, minified=False, live=False, include_drafts=False):
        self.config = config
        self.minified = minified
        self.live = live
        self.include_drafts = include_drafts

        self.items: List[ContentItem] = []
        self.collections: Collections = {}
        self.i18n: I18n | None = None
        self.data_globals: set[str] = set()
        self.needs_highlight_css = False

        self.env = self.make_jinja_env()
        self.load()

    def include_raw(self, file_path: str) -> Markup:
        """
        Returns the contents of the given file as-is without processing it as a jinja template, unlike the built-in
        {% include "file" %} statement.

        :param file_path: Path of the file relative to the includes directory. The file being included MUST reside
        inside the includes directory.
        """
        include_path = self.config.includes_dir.resolve()
        file_path = (include_path / file_path).resolve()

        if not file_path.is_relative_to(include_path):
            raise BuildError("Reading files outside of the includes directory is not allowed.")

        with open(file_path) as file:
            return Markup(file.read())

    def url(self, path: str) -> str:
        """Prepends the configured path prefix to site-relative URLs, anything else is returned untouched."""
        if not isinstance(path, str) or not path.startswith("/") or path.startswith("//"):
            return path
        return self.config.path_prefix.rstrip("/") + path

    def make_jinja_env(self) -> Environment:
        env = Environment(
            loader=ChoiceLoader([
                FrontMatterLoader(self.config.layouts_dir),
                FileSystemLoader(self.config.includes_dir),
            ]),
            autoescape=select_autoescape(["html", "jinja"]),
            trim_blocks=True,
        )

        env.globals["site"] = dict(self.config.site)
        env.globals["include_raw"] = self.include_raw

        env.filters["pick"] = pick
        env.filters["random_pick"] = pick
        env.filters["url"] = self.url
        env.filters["sort_by_nav_order"] = lambda items: sort_items(items, by_nav_order)
        env.filters["sort_by_chapter_sequence"] = lambda items: sort_items(items, by_chapter_sequence)
        env.filters["navigation"] = navigation_entries
        env.filters["breadcrumbs"] = breadcrumbs
        env.filters["navigation_html"] = functools.partial(navigation_html, url_for=self.url)

        return env

    def load(self):
        # Called again by the live server on every change, a failed load keeps the previous state.
        items = load_items(self.config, self.include_drafts)
        data = load_global_data(self.config)

        self.items = items
        self.collections = make_collections(self.items)

        for name in self.data_globals - data.keys():
            # The data file was deleted since the last load.
            self.env.globals.pop(name, None)
        self.data_globals = set(data)
        self.env.globals.update(data)
        self.env.globals["collections"] = self.collections

        self.i18n = I18n(self.items, self.config.default_language, self.config.languages)
        self.i18n.register(self.env)

    def find_layout(self, name: str) -> str:
        candidates = [name] if Path(name).suffix else [name + suffix for suffix in LAYOUT_SUFFIXES]
        for candidate in candidates:
            if (self.config.layouts_dir / candidate).is_file():
                return candidate

        raise BuildError(f"Layout '{name}' not found in '{self.config.layouts_dir}'.")

    def apply_layouts(self, layout: str | None, content: Markup, context: Dict) -> str:
        seen = set()
        while layout:
            name = self.find_layout(layout)
            if name in seen:
                raise BuildError(f"Layout '{name}' includes itself.")
            seen.add(name)

            content = Markup(self.env.get_template(name).render({**context, "content": content}))
            layout = frontmatter.load(self.config.layouts_dir / name).get("layout")

        return str(content)

    def render_item(self, item: ContentItem) -> str:
        page = item.to_context()
        page["stylesheets"] = []
        context = {**item.data, "page": page}

        if item.template_type == "markdown":
            rendered = render_markdown(item.content, self.config.markdown)
            content = Markup(rendered.html)
            page["toc"] = rendered.toc
            page["summary"] = Markup(rendered.summary)

            if HIGHLIGHT_STYLESHEET in rendered.stylesheets:
                self.needs_highlight_css = True
                page["stylesheets"].append(self.url("/" + HIGHLIGHT_STYLESHEET))
        else:
            content = Markup(self.env.from_string(item.content).render(context))

        return self.apply_layouts(item.layout, content, context)

    @staticmethod
    def handle_output(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            file_path, code = func(self, *args, **kwargs)
            file_path = Path(file_path)

            mimetype = mimetype_map.get(file_path.suffix)
            if self.minified and mimetype in MINIFIABLE:
                code = minify.string(mimetype, code)

            if not self.live:
                file_path.parent.mkdir(parents=True, exist_ok=True)
                with open(file_path, "w") as file:
                    file.write(code)

            return code

        return wrapper

    # **************************************************************************************************************** #
    #                                                   Build Steps                                                    #
    # **************************************************************************************************************** #

    @handle_output
    def build_item(self, item: ContentItem) -> Tuple[Path, str]:
        if item.output_path is None:
            raise BuildError(f"'{item.input_path}' has `permalink: false` and is not written.")

        if not self.config.quiet_mode:
            logger.info("Writing %s from %s", item.output_path, item.input_path)

        output_path = self.config.output_dir / item.output_path
        if not output_path.resolve().is_relative_to(self.config.output_dir.resolve()):
            raise BuildError(f"'{item.input_path}' would be written outside '{self.config.output_dir}'.")

        return output_path, self.render_item(item)

    @handle_output
    def build_highlight_css(self) -> Tuple[Path, str]:
        return self.config.output_dir / HIGHLIGHT_STYLESHEET, highlight_css(self.config.markdown.code_style)

    def copy_passthrough(self) -> int:
        copied = 0
        for path in self.config.passthrough:
            src = self.config.root / path
            dst = self.config.output_dir / path

            if not src.exists():
                logger.warning("Passthrough path '%s' does not exist, skipping.", path)
                continue

            if src.is_dir():
                shutil.copytree(src, dst, dirs_exist_ok=True)
                copied += sum(1 for file in src.rglob("*") if file.is_file())
            else:
                dst.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src, dst)
                copied += 1

            if not self.config.quiet_mode:
                logger.info("Copied %s", path)

        return copied

    def clean_output(self):
        output_dir = self.config.output_dir.resolve()
        if output_dir == self.config.root or self.config.input_dir.resolve().is_relative_to(output_dir):
            raise BuildError(f"Refusing to clear output directory '{output_dir}', it contains the project sources.")

        if output_dir.exists():
            # Deleted pages would otherwise survive from previous builds.
            shutil.rmtree(output_dir)

    def render_url(self, url: str) -> str | None:
        for item in self.items:
            if item.url == url:
                return self.build_item(item)
        return None

    def build(self) -> BuildResult:
        start = time.perf_counter()
        self.clean_output()

        result = BuildResult()
        self.needs_highlight_css = False
        for item in self.items:
            if item.output_path is None:
                continue
            self.build_item(item)
            result.written.append(self.config.output_dir / item.output_path)

        if self.needs_highlight_css:
            self.build_highlight_css()
            result.written.append(self.config.output_dir / HIGHLIGHT_STYLESHEET)

        result.copied = self.copy_passthrough()

        logger.info(
            "Wrote %d files, copied %d in %.2f seconds",
            len(result.written), result.copied, time.perf_counter() - start,
        )
        return result
