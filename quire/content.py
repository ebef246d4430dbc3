import json
import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List

from quire.config import SiteConfig
from quire.constants import *
from quire.exceptions import ContentError

import frontmatter
import yaml

logger = logging.getLogger(__name__)

@dataclass
class ContentItem:
    input_path: str
    url: str | None
    data: Dict = field(default_factory=dict)
    content: str = ""
    template_type: str = "markdown"
    lang: str = DEFAULT_LANGUAGE

    @property
    def title(self) -> str:
        return self.data.get("title", "")

    @property
    def tags(self) -> List[str]:
        tags = self.data.get("tags", [])
        return [tags] if isinstance(tags, str) else list(tags)

    @property
    def layout(self) -> str | None:
        return self.data.get("layout")

    @property
    def draft(self) -> bool:
        return bool(self.data.get("draft", False))

    @property
    def output_path(self) -> str | None:
        """Path of the generated file relative to the output directory, None for items that are not written."""
        if self.url is None:
            return None

        path = self.url.lstrip("/")
        if not path or path.endswith("/"):
            return path + "index.html"
        return path

    def to_context(self) -> Dict:
        # What templates see as `page`.
        return {
            **self.data,
            "url": self.url,
            "input_path": self.input_path,
            "output_path": self.output_path,
            "lang": self.lang,
        }


def is_language(segment: str, languages: Iterable[str] = ()) -> bool:
    # A configured language list is authoritative, otherwise anything shaped like a code (`en`, `pt-br`) counts.
    if languages:
        return segment.lower() in languages
    return bool(LANGUAGE_CODE.match(segment))


def detect_language(input_path: str, default_language: str, languages: Iterable[str] = ()) -> str:
    first = PurePosixPath(input_path).parts[0]
    if first != PurePosixPath(input_path).name and is_language(first, languages):
        return first.lower()
    return default_language


def default_url(input_path: str) -> str:
    """
    Maps a path relative to the input directory to the URL it is published at:
        index.md -> /
        about.md -> /about/
        docs/index.html -> /docs/
        docs/intro.jinja -> /docs/intro/
    """
    path = PurePosixPath(input_path)
    parts = list(path.parent.parts)
    if path.stem != "index":
        parts.append(path.stem)

    return "/" + "".join(part + "/" for part in parts)


def resolve_url(input_path: str, permalink) -> str | None:
    if permalink is False:
        return None

    if permalink is None:
        return default_url(input_path)

    if not isinstance(permalink, str) or not permalink.strip():
        raise ContentError(f"Invalid permalink {permalink!r} in '{input_path}'.")

    # Output paths are joined onto the output directory, they must stay inside it.
    if ".." in PurePosixPath(permalink.strip()).parts:
        raise ContentError(f"Permalink {permalink!r} in '{input_path}' points outside the output directory.")

    return "/" + permalink.strip().lstrip("/")


def is_skipped(relative: Path) -> bool:
    # Underscore and dot prefixed directories hold data, includes, layouts or tooling, never pages.
    return any(part.startswith(("_", ".")) for part in relative.parts)


def load_item(config: SiteConfig, file_path: Path) -> ContentItem:
    input_path = file_path.relative_to(config.input_dir).as_posix()

    try:
        with open(file_path) as file:
            post = frontmatter.load(file)
    except (yaml.YAMLError, ValueError, UnicodeDecodeError) as e:
        raise ContentError(f"Could not read front matter of '{input_path}': {e}") from e

    data = dict(post.metadata)
    return ContentItem(
        input_path=input_path,
        url=resolve_url(input_path, data.get("permalink")),
        data=data,
        content=post.content,
        template_type="markdown" if file_path.suffix in MARKDOWN_SUFFIXES else "jinja",
        lang=data.get("lang") or detect_language(input_path, config.default_language, config.languages),
    )


def load_items(config: SiteConfig, include_drafts: bool = False) -> List[ContentItem]:
    """
    Loads every page below the input directory, in path order. Drafts (`draft: true` in the front matter) are left out
    unless `include_drafts` is set.

    :raises ContentError: unreadable front matter, or two pages publishing to the same URL.
    """
    if not config.input_dir.is_dir():
        raise ContentError(f"Input directory '{config.input_dir}' does not exist.")

    suffixes = MARKDOWN_SUFFIXES + TEMPLATE_SUFFIXES
    items = []
    seen_urls: Dict[str, str] = {}

    for file_path in sorted(config.input_dir.rglob("*")):
        relative = file_path.relative_to(config.input_dir)
        if not file_path.is_file() or file_path.suffix not in suffixes or is_skipped(relative):
            continue

        item = load_item(config, file_path)
        if item.draft and not include_drafts:
            logger.debug("Skipping draft %s", item.input_path)
            continue

        if item.url is not None:
            if item.url in seen_urls:
                raise ContentError(
                    f"'{item.input_path}' and '{seen_urls[item.url]}' both publish to '{item.url}'."
                )
            seen_urls[item.url] = item.input_path

        items.append(item)

    return items


def load_global_data(config: SiteConfig) -> Dict:
    """Every json/toml file of the data directory becomes a template global named after the file."""
    data = {}
    if not config.data_dir.is_dir():
        return data

    for file_path in sorted(config.data_dir.iterdir()):
        if file_path.suffix not in DATA_SUFFIXES:
            continue

        try:
            if file_path.suffix == ".toml":
                with open(file_path, "rb") as file:
                    data[file_path.stem] = tomllib.load(file)
            else:
                with open(file_path) as file:
                    data[file_path.stem] = json.load(file)
        except (ValueError, tomllib.TOMLDecodeError) as e:
            raise ContentError(f"Could not parse data file '{file_path.name}': {e}") from e

    return data


def tag_collections(items: Iterable[ContentItem]) -> Dict[str, List[ContentItem]]:
    collections: Dict[str, List[ContentItem]] = {}
    for item in items:
        for tag in item.tags:
            collections.setdefault(tag, []).append(item)
    return collections
