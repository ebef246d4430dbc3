import dataclasses
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from quire.constants import *
from quire.exceptions import ConfigError


@dataclass(frozen=True)
class Directories:
    input: str = DEFAULT_DIRS["input"]
    data: str = DEFAULT_DIRS["data"]
    includes: str = DEFAULT_DIRS["includes"]
    layouts: str = DEFAULT_DIRS["layouts"]
    output: str = DEFAULT_DIRS["output"]


@dataclass(frozen=True)
class MarkdownOptions:
    code_style: str = "sas"
    toc_depth: int = 4
    section_numbering: bool = False


@dataclass(frozen=True)
class SiteConfig:
    root: Path
    dirs: Directories = field(default_factory=Directories)
    path_prefix: str = "/"
    quiet_mode: bool = False
    passthrough: tuple[str, ...] = DEFAULT_PASSTHROUGH
    default_language: str = DEFAULT_LANGUAGE
    languages: tuple[str, ...] = ()
    markdown: MarkdownOptions = field(default_factory=MarkdownOptions)
    site: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self):
        object.__setattr__(self, "root", Path(self.root).resolve())
        object.__setattr__(self, "path_prefix", normalize_prefix(self.path_prefix))
        object.__setattr__(self, "passthrough", tuple(self.passthrough))
        object.__setattr__(self, "languages", tuple(language.lower() for language in self.languages))
        object.__setattr__(self, "site", MappingProxyType(dict(self.site)))

    @property
    def input_dir(self) -> Path:
        return self.root / self.dirs.input

    @property
    def data_dir(self) -> Path:
        return self.input_dir / self.dirs.data

    @property
    def includes_dir(self) -> Path:
        return self.input_dir / self.dirs.includes

    @property
    def layouts_dir(self) -> Path:
        return self.input_dir / self.dirs.layouts

    @property
    def output_dir(self) -> Path:
        return self.root / self.dirs.output


def normalize_prefix(prefix: str) -> str:
    # Always "/", or "/something/" with a single slash on either side.
    prefix = "/" + str(prefix).strip("/") + "/"
    return "/" if prefix == "//" else prefix


def _check_table(name: str, table: Any, allowed: Mapping[str, type]) -> dict:
    if not isinstance(table, dict):
        raise ConfigError(f"'{name}' must be a table, got {type(table).__name__}.")

    for key, value in table.items():
        if key not in allowed:
            raise ConfigError(f"Unknown key '{key}' in '{name}'.")

        # bool is an int subclass, a toml `true` must not pass for an integer setting.
        wrong_bool = isinstance(value, bool) and allowed[key] is not bool
        if wrong_bool or not isinstance(value, allowed[key]):
            raise ConfigError(f"'{name}.{key}' must be of type {allowed[key].__name__}.")

    return table


def parse_config(root: str | Path, raw: dict) -> SiteConfig:
    """
    Validates the contents of a `quire.toml` file and turns them into a `SiteConfig`. Every key is optional:

        path_prefix = "/"
        quiet_mode = false
        passthrough = ["assets"]

        [dirs]
        input = "views"
        output = "_site"

        [i18n]
        default_language = "en"
        languages = ["en", "fr"]

        [markdown]
        code_style = "sas"

        [site]
        title = "anything goes here, it is exposed to templates as `site`"
    """
    _check_table("quire.toml", raw, {
        "path_prefix": str,
        "quiet_mode": bool,
        "passthrough": list,
        "dirs": dict,
        "i18n": dict,
        "markdown": dict,
        "site": dict,
    })

    dirs = _check_table("dirs", raw.get("dirs", {}), {name: str for name in DEFAULT_DIRS})
    i18n = _check_table("i18n", raw.get("i18n", {}), {"default_language": str, "languages": list})
    markdown = _check_table("markdown", raw.get("markdown", {}), {
        "code_style": str,
        "toc_depth": int,
        "section_numbering": bool,
    })

    passthrough = raw.get("passthrough", list(DEFAULT_PASSTHROUGH))
    if not all(isinstance(path, str) for path in passthrough):
        raise ConfigError("'passthrough' must be a list of paths.")

    languages = i18n.get("languages", [])
    if not all(isinstance(language, str) and LANGUAGE_CODE.match(language) for language in languages):
        raise ConfigError("'i18n.languages' must be a list of language codes.")

    return SiteConfig(
        root=Path(root),
        dirs=Directories(**dirs),
        path_prefix=raw.get("path_prefix", "/"),
        quiet_mode=raw.get("quiet_mode", False),
        passthrough=tuple(passthrough),
        default_language=i18n.get("default_language", DEFAULT_LANGUAGE),
        languages=tuple(languages),
        markdown=MarkdownOptions(**markdown),
        site=raw.get("site", {}),
    )


def load_config(root: str | Path) -> SiteConfig:
    """
    Reads `quire.toml` from the project root. A project without one gets the default configuration.

    :raises ConfigError: the file is not valid TOML or contains unknown keys / wrongly typed values.
    """
    root = Path(root)
    config_file = root / CONFIG_FILE_NAME

    if not config_file.exists():
        return SiteConfig(root=root)

    try:
        with open(config_file, "rb") as file:
            raw = tomllib.load(file)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Could not parse {config_file}: {e}") from e

    return parse_config(root, raw)


def configure(root: str | Path, **overrides) -> SiteConfig:
    # Command line flags win over the config file, None means the flag was not given.
    config = load_config(root)
    overrides = {key: value for key, value in overrides.items() if value is not None}
    return dataclasses.replace(config, **overrides) if overrides else config
