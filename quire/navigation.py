from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from quire.sorts import by_nav_order, nested_value, sort_items

from markupsafe import Markup, escape


@dataclass
class NavEntry:
    key: str
    title: str
    url: str | None
    order: float = 0
    parent: str | None = None
    children: List["NavEntry"] = field(default_factory=list)


def _entry(item) -> NavEntry | None:
    nav = nested_value(item, ("data", "navigation"))
    if not isinstance(nav, dict) or "key" not in nav:
        return None

    return NavEntry(
        key=str(nav["key"]),
        title=nav.get("title") or nested_value(item, ("data", "title")) or str(nav["key"]),
        url=nav.get("url", getattr(item, "url", None)),
        order=nav.get("order", 0),
        parent=None if nav.get("parent") is None else str(nav["parent"]),
    )


def _in_cycle(entry: NavEntry, entries: Dict[str, NavEntry]) -> bool:
    seen = {entry.key}
    parent = entry.parent
    while parent in entries:
        if parent in seen:
            return parent == entry.key
        seen.add(parent)
        parent = entries[parent].parent
    return False


def navigation_entries(items: Iterable, key: str | None = None) -> List[NavEntry]:
    """
    Builds the navigation tree out of every item carrying `navigation: {key: ...}` in its front matter.

    :param key: Return the children of this entry instead of the top-level entries.
    :return: Sibling entries ordered by `navigation.order`, entries without an order count as 0 and ties keep the
    order the items came in.
    """
    entries: Dict[str, NavEntry] = {}
    for item in sort_items(items, by_nav_order):
        entry = _entry(item)
        if entry is not None and entry.key not in entries:
            entries[entry.key] = entry

    roots = []
    for entry in entries.values():
        parent = entries.get(entry.parent) if entry.parent is not None else None
        if parent is None or _in_cycle(entry, entries):
            roots.append(entry)
        else:
            parent.children.append(entry)

    if key is None:
        return roots

    return entries[key].children if key in entries else []


def breadcrumbs(items: Iterable, key: str, include_self: bool = False) -> List[NavEntry]:
    entries = {}
    for item in items:
        entry = _entry(item)
        if entry is not None:
            entries.setdefault(entry.key, entry)

    if key not in entries:
        return []

    trail = [entries[key]] if include_self else []
    seen = {key}
    parent = entries[key].parent
    while parent in entries and parent not in seen:
        seen.add(parent)
        trail.append(entries[parent])
        parent = entries[parent].parent

    trail.reverse()
    return trail


def navigation_html(entries: Iterable[NavEntry], active_url: str | None = None, url_for=None) -> Markup:
    """
    Renders navigation entries as nested lists. `url_for` maps an entry's URL to the href written out, the builder
    passes its `url` filter here so the path prefix is applied.
    """
    entries = list(entries)
    if not entries:
        return Markup("")

    html = Markup("<ul>")
    for entry in entries:
        html += Markup("<li>")
        if entry.url is None:
            html += escape(entry.title)
        else:
            href = url_for(entry.url) if url_for else entry.url
            current = Markup(' aria-current="page"') if entry.url == active_url else Markup("")
            html += Markup('<a href="{}"{}>{}</a>').format(href, current, entry.title)
        html += navigation_html(entry.children, active_url, url_for)
        html += Markup("</li>")
    html += Markup("</ul>")

    return html
