import re

__all__ = [
    "CONFIG_FILE_NAME", "DEFAULT_DIRS", "DEFAULT_PASSTHROUGH", "DEFAULT_LANGUAGE", "TEMPLATE_SUFFIXES",
    "MARKDOWN_SUFFIXES", "DATA_SUFFIXES", "LANGUAGE_CODE",
]

CONFIG_FILE_NAME = "quire.toml"

# `data`, `includes` and `layouts` live inside the input directory, `output` is relative to the project root.
DEFAULT_DIRS = {
    "input": "views",
    "data": "_data",
    "includes": "_includes",
    "layouts": "_layouts",
    "output": "_site",
}

DEFAULT_PASSTHROUGH = ("assets",)
DEFAULT_LANGUAGE = "en"
LANGUAGE_CODE = re.compile(r"^[a-z]{2}(-[a-z]{2,4})?$", re.IGNORECASE)

MARKDOWN_SUFFIXES = (".md",)
TEMPLATE_SUFFIXES = (".html", ".jinja")
DATA_SUFFIXES = (".json", ".toml")
