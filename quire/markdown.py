import ast
import html
import re
from dataclasses import dataclass, field
from typing import Dict, List

from quire.config import MarkdownOptions

from mistletoe import block_token
from mistletoe.block_token import BlockToken, Document, Paragraph, tokenize
from mistletoe.html_renderer import HtmlRenderer
from pygments import highlight
from pygments.formatters.html import HtmlFormatter
from pygments.lexers import get_lexer_by_name, guess_lexer
from pygments.util import ClassNotFound

HIGHLIGHT_STYLESHEET = "highlight.css"


@dataclass
class RenderedMarkdown:
    html: str
    toc: List[Dict] = field(default_factory=list)
    summary: str = ""
    stylesheets: List[str] = field(default_factory=list)


class CustomBlock(BlockToken):
    """
    This allows for custom blocks with the following syntax:

    ::: block_type
    content here rendered as normal markdown.
    :::
    """

    pattern = re.compile(r"::: *((\S*)[^\n]*)")
    _open_info = None

    def __init__(self, match):
        lines, (self.block_type, self.info_string) = match
        super().__init__(lines, tokenize)

    @classmethod
    def start(cls, line):
        match_obj = cls.pattern.match(line)
        if not match_obj:
            return False

        info_string, block_type = match_obj.groups()
        if not block_type:
            return False

        cls._open_info = block_type, info_string
        return True

    @classmethod
    def read(cls, lines):
        next(lines)
        line_buffer = []
        for line in lines:
            if line.lstrip().startswith(":::"):
                break
            line_buffer.append(line)
        return line_buffer, cls._open_info


class BaseRenderer(HtmlRenderer):
    def __init__(self, *extras, **kwargs):
        # noinspection PyTypeChecker
        super().__init__(CustomBlock, *extras, **kwargs)

        # Lets the parsing process request additional css as it sees fit per document.
        self.additional_stylesheets = []


class PygmentsRenderer(BaseRenderer):
    def __init__(self, *extras, code_style="sas", frontmatter_linenos_offset=0, **kwargs):
        super().__init__(*extras, **kwargs)
        self.code_style = code_style

        # Front matter is stripped before parsing, this is how many lines it used up. Add it to `Token.line_number` to
        # get the absolute line number in the source file.
        self.frontmatter_linenos_offset = frontmatter_linenos_offset

    def parse_code_block_arguments(self, token: block_token.CodeFence):
        """
        Implements the following additional syntax:

        ```language | linenos | highlight=[1,(2, 3)] | absolute_numbering
        import foo
        bar = "example"
        print(bar)
        ```

        Everything after the language is optional. The `highlight` argument must be of type `List[int | Tuple[int, int]]`,
        where a tuple is an inclusive range. Line numbers are relative to the code fence unless `absolute_numbering` is
        passed.
        """
        args = {
            "linenos": False,
            "highlight": [],
            "absolute_numbering": False,
        }

        info_string = getattr(token, "info_string", "") or ""
        for arg in info_string.split("|")[1:]:
            arg: str = arg.strip()

            if arg == "linenos":
                args["linenos"] = True

            elif arg == "absolute_numbering":
                args["absolute_numbering"] = True

            elif arg.startswith("highlight"):
                lines = ast.literal_eval(arg.split("=", 1)[1].strip())
                if isinstance(lines, list):
                    args["highlight"] = lines

        offset = 0
        if args["absolute_numbering"]:
            offset = getattr(token, "line_number", 0) + self.frontmatter_linenos_offset

        hl_lines = []
        for line in args["highlight"]:
            if isinstance(line, (tuple, list)):
                hl_lines.extend(range(line[0] - offset, line[1] - offset + 1))
            elif isinstance(line, int):
                hl_lines.append(line - offset)

        args["highlight"] = hl_lines
        return args

    def render_block_code(self, token: block_token.BlockCode | block_token.CodeFence) -> str:
        code = token.content
        lexer = None
        args = self.parse_code_block_arguments(token)

        language = (token.language or "").split("|")[0].strip()
        if language:
            try:
                lexer = get_lexer_by_name(language)
            except ClassNotFound:
                pass

        if lexer is None:
            lexer = guess_lexer(code)

        if HIGHLIGHT_STYLESHEET not in self.additional_stylesheets:
            self.additional_stylesheets.append(HIGHLIGHT_STYLESHEET)

        formatter = HtmlFormatter(style=self.code_style, linenos=args["linenos"], hl_lines=args["highlight"])
        return highlight(code, lexer, formatter)


class SummaryRenderer(BaseRenderer):
    def __init__(self, *extras, **kwargs):
        super().__init__(*extras, **kwargs)
        self.is_first_paragraph = True
        self.summary = ""

    def render_paragraph(self, token: Paragraph) -> str:
        ret = super().render_paragraph(token)
        if self.is_first_paragraph and isinstance(token.parent, Document):
            self.is_first_paragraph = False
            self.summary = ret
        return ret


class CustomBlocksRenderer(BaseRenderer):
    def render_custom_block(self, token: CustomBlock):
        if token.block_type == "aside":
            return "<aside>{}</aside>".format(self.render_inner(token))

        return '<div class="{}">{}</div>'.format(html.escape(token.block_type), self.render_inner(token))


def slugify(text: str) -> str:
    text = html.unescape(re.sub(r"<[^>]+>", "", text)).lower()
    text = re.sub(r"[^\w\s-]", "", text)
    return re.sub(r"[\s_-]+", "-", text).strip("-") or "section"


class TOCRenderer(BaseRenderer):
    def __init__(self, *extras, toc_depth=4, section_numbering=False, **kwargs):
        super().__init__(*extras, **kwargs)
        self.toc_depth = toc_depth
        self.section_numbering = section_numbering
        self.counter_stack = []
        self.last_level = None
        self.anchors = set()
        self.toc = []

    def update_counters(self, curr_level):
        if self.last_level is None:
            # The top-level heading isn't necessarily h1 (pages rendered inside a layout usually start at h2).
            self.last_level = curr_level - 1

        if self.last_level < curr_level:
            self.counter_stack.extend([1] * (curr_level - self.last_level))
        elif self.last_level == curr_level:
            self.counter_stack[-1] += 1
        else:
            drop = self.last_level - curr_level
            # Climbing above the first heading's level keeps numbering on the outermost counter.
            self.counter_stack = self.counter_stack[:-drop] if drop < len(self.counter_stack) else self.counter_stack[:1]
            self.counter_stack[-1] += 1

        self.last_level = curr_level

    def unique_anchor(self, content: str) -> str:
        anchor = base = slugify(content)
        n = 1
        while anchor in self.anchors:
            n += 1
            anchor = f"{base}-{n}"
        self.anchors.add(anchor)
        return anchor

    def render_heading(self, token: block_token.Heading) -> str:
        content = self.render_inner(token)
        if token.level > self.toc_depth:
            return f"<h{token.level}>{content}</h{token.level}>"

        anchor = self.unique_anchor(content)

        if self.section_numbering:
            self.update_counters(token.level)
            section_number = ".".join(str(c) for c in self.counter_stack)
            if section_number.isdigit():
                # "1 Heading" becomes "1. Heading", but "1.1 Sub Heading" remains as is.
                section_number += "."

            content = f"<span class=section-numbers>{section_number}</span> " + content

        self.toc.append({
            "level": token.level,
            "id": anchor,
            "content": content,
        })

        return f'<h{token.level} id="{anchor}">{content}</h{token.level}>'


class ExtendedRenderer(PygmentsRenderer, SummaryRenderer, CustomBlocksRenderer, TOCRenderer):
    pass


def render_markdown(text: str, options: MarkdownOptions | None = None, frontmatter_linenos_offset: int = 0) -> RenderedMarkdown:
    """
    Renders markdown to HTML with syntax highlighted code fences, `::: block` containers and heading anchors.

    :return: The HTML along with the table of contents (a flat list of `{level, id, content}` dicts in document order),
    the first paragraph as a summary and any stylesheets the document needs.
    """
    options = options or MarkdownOptions()

    # Tokens must be created while the renderer is active, mistletoe registers extra tokens on enter.
    with ExtendedRenderer(
        code_style=options.code_style,
        toc_depth=options.toc_depth,
        section_numbering=options.section_numbering,
        frontmatter_linenos_offset=frontmatter_linenos_offset,
    ) as renderer:
        rendered = renderer.render(Document(text))

    return RenderedMarkdown(
        html=rendered,
        toc=renderer.toc,
        summary=renderer.summary,
        stylesheets=renderer.additional_stylesheets,
    )


def highlight_css(style: str = "sas") -> str:
    return HtmlFormatter(style=style).get_style_defs(".highlight")
