from typing import Dict, Iterable, List

from quire.content import is_language

from jinja2 import pass_context


class I18n:
    """
    Lets templates link between translations of the same page. Translations live in per-language directories at the
    top of the input directory, so `/en/about/` and `/fr/about/` are the same page in two languages.
    """

    def __init__(self, items: Iterable, default_language: str, languages: Iterable[str] = ()):
        self.default_language = default_language
        self.languages = tuple(languages)
        self.urls: Dict[str, str] = {
            item.url: item.lang for item in items if item.url is not None
        }

    def split(self, url: str) -> tuple[str | None, str]:
        # "/fr/about/" -> ("fr", "about/"), "/about/" -> (None, "about/")
        first, _, rest = url.lstrip("/").partition("/")
        if is_language(first, self.languages):
            return first.lower(), rest
        return None, url.lstrip("/")

    def locale_url(self, url: str, locale: str | None = None) -> str:
        """Returns the `locale` version of `url` when that page exists, `url` itself otherwise."""
        locale = locale or self.default_language
        lang, rest = self.split(url)
        if lang is None or lang == locale:
            return url

        candidate = f"/{locale}/{rest}"
        return candidate if candidate in self.urls else url

    def locale_links(self, url: str) -> List[Dict]:
        lang, rest = self.split(url)
        if lang is None:
            return []

        links = []
        for candidate, candidate_lang in self.urls.items():
            if candidate_lang == lang:
                continue

            if self.split(candidate) == (candidate_lang, rest):
                links.append({"url": candidate, "lang": candidate_lang})

        return sorted(links, key=lambda link: link["lang"])

    def register(self, env):
        @pass_context
        def locale_url(context, url, locale=None):
            if locale is None:
                locale = (context.get("page") or {}).get("lang")
            return self.locale_url(url, locale)

        env.filters["locale_url"] = locale_url
        env.filters["locale_links"] = self.locale_links
