"""
Markdown <-> Confluence storage markup conversion.

`to_storage_markup` is a single-pass, line-oriented converter for the small
Markdown dialect accepted by the page and comment tools. `to_display_markdown`
is the lossy reverse used when pages are read back.
"""

import html
import re

# Pre-compiled block patterns
FENCE_PATTERN = re.compile(r'^```(.*)$')
FENCE_LANG_PATTERN = re.compile(r'^[\w+#.-]+$')
TABLE_SEPARATOR_PATTERN = re.compile(r'^\|?\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)+\|?\s*$')
HR_PATTERN = re.compile(r'^\s*(\*{3,}|-{3,}|_{3,})\s*$')
HEADING_PATTERN = re.compile(r'^(#{1,6})\s+(.*)$')
UL_ITEM_PATTERN = re.compile(r'^[-*]\s+(.+)$')
OL_ITEM_PATTERN = re.compile(r'^\d+\.\s+(.+)$')
CELL_SPLIT_PATTERN = re.compile(r'(?<!\\)\|')

# Pre-compiled inline patterns, applied in this order
LINK_PATTERN = re.compile(r'\[([^\]]+)\]\(([^)]+)\)')
INLINE_CODE_PATTERN = re.compile(r'`([^`]+)`')
BOLD_STAR_PATTERN = re.compile(r'\*\*([^*]+)\*\*')
BOLD_UNDERSCORE_PATTERN = re.compile(r'__([^_]+)__')
ITALIC_STAR_PATTERN = re.compile(r'(?<!\*)\*([^*]+)\*(?!\*)')
ITALIC_UNDERSCORE_PATTERN = re.compile(r'(?<![\w_])_([^_]+)_(?![\w_])')
PLACEHOLDER_PATTERN = re.compile(r'\x00(\d+)\x00')

_DOTALL_I = re.IGNORECASE | re.DOTALL

# Reverse direction, applied in order, then any remaining tag is stripped
DISPLAY_RULES: list[tuple[re.Pattern, str]] = [
    (re.compile(r'<h1[^>]*>(.*?)</h1>', _DOTALL_I), r'# \1\n\n'),
    (re.compile(r'<h2[^>]*>(.*?)</h2>', _DOTALL_I), r'## \1\n\n'),
    (re.compile(r'<h3[^>]*>(.*?)</h3>', _DOTALL_I), r'### \1\n\n'),
    (re.compile(r'<p(?:\s[^>]*)?>(.*?)</p>', _DOTALL_I), r'\1\n\n'),
    (re.compile(r'<br\s*/?>', re.IGNORECASE), '\n'),
    (re.compile(r'<strong[^>]*>(.*?)</strong>', _DOTALL_I), r'**\1**'),
    (re.compile(r'<b(?:\s[^>]*)?>(.*?)</b>', _DOTALL_I), r'**\1**'),
    (re.compile(r'<em[^>]*>(.*?)</em>', _DOTALL_I), r'*\1*'),
    (re.compile(r'<i(?:\s[^>]*)?>(.*?)</i>', _DOTALL_I), r'*\1*'),
    (re.compile(r'<a\s[^>]*href="([^"]+)"[^>]*>(.*?)</a>', _DOTALL_I), r'[\2](\1)'),
    (re.compile(r'<li[^>]*>(.*?)</li>', _DOTALL_I), r'- \1\n'),
    (re.compile(r'</?ul[^>]*>', re.IGNORECASE), '\n'),
    (re.compile(r'</?ol[^>]*>', re.IGNORECASE), '\n'),
    (re.compile(r'<pre[^>]*>\s*<code[^>]*>(.*?)</code>\s*</pre>', _DOTALL_I), '```\n\\1\n```'),
    (re.compile(r'<code[^>]*>(.*?)</code>', _DOTALL_I), r'`\1`'),
]
TAG_PATTERN = re.compile(r'<[^>]+>', re.DOTALL)
EXTRA_BLANK_LINES_PATTERN = re.compile(r'\n{3,}')


def escape_html(text: str) -> str:
    """Escape the three characters that could open or break markup."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _stash(stash: list[str], fragment: str) -> str:
    stash.append(fragment)
    return f"\x00{len(stash) - 1}\x00"


def _restore(text: str, stash: list[str]) -> str:
    return PLACEHOLDER_PATTERN.sub(lambda m: _restore(stash[int(m.group(1))], stash), text)


def _render_spans(text: str, stash: list[str]) -> str:
    # Code spans are stashed so emphasis never reaches inside them
    text = INLINE_CODE_PATTERN.sub(lambda m: _stash(stash, f"<code>{m.group(1)}</code>"), text)
    text = BOLD_STAR_PATTERN.sub(r'<strong>\1</strong>', text)
    text = BOLD_UNDERSCORE_PATTERN.sub(r'<strong>\1</strong>', text)
    text = ITALIC_STAR_PATTERN.sub(r'<em>\1</em>', text)
    text = ITALIC_UNDERSCORE_PATTERN.sub(r'<em>\1</em>', text)
    return text


def render_inline(raw: str) -> str:
    """Render inline Markdown (links, code, bold, italic) inside one text span."""
    stash: list[str] = []
    text = escape_html(raw.replace("\x00", ""))

    def link(match: re.Match) -> str:
        href = match.group(2).strip().replace('"', "&quot;")
        return _stash(stash, f'<a href="{href}">{_render_spans(match.group(1), stash)}</a>')

    text = LINK_PATTERN.sub(link, text)
    text = _render_spans(text, stash)
    return _restore(text, stash)


def parse_table_cells(line: str) -> list[str]:
    """Split a table row on unescaped pipes; `\\|` stays a literal pipe."""
    stripped = line.strip()
    if stripped.startswith("|"):
        stripped = stripped[1:]
    if stripped.endswith("|") and not stripped.endswith("\\|"):
        stripped = stripped[:-1]
    return [cell.replace("\\|", "|").strip() for cell in CELL_SPLIT_PATTERN.split(stripped)]


def is_table_separator(line: str) -> bool:
    return bool(TABLE_SEPARATOR_PATTERN.match(line.strip()))


class StorageMarkupConverter:
    """Line scanner holding the open block modes while converting one document.

    At most one block is open at a time, except a paragraph nested inside a
    blockquote.
    """

    def __init__(self, markdown: str):
        self.lines = markdown.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        self.out: list[str] = []
        self.paragraph: list[str] | None = None
        self.in_ul = False
        self.in_ol = False
        self.in_quote = False
        self.in_code = False
        self.code_lang: str | None = None
        self.code_lines: list[str] = []

    # ----- block closing -----

    def close_paragraph(self) -> None:
        if self.paragraph is not None:
            self.out.append(f"<p>{' '.join(self.paragraph)}</p>")
            self.paragraph = None

    def close_lists(self) -> None:
        if self.in_ul:
            self.out.append("</ul>")
            self.in_ul = False
        if self.in_ol:
            self.out.append("</ol>")
            self.in_ol = False

    def close_quote(self) -> None:
        if self.in_quote:
            self.close_paragraph()
            self.out.append("</blockquote>")
            self.in_quote = False

    def close_blocks(self) -> None:
        self.close_quote()
        self.close_paragraph()
        self.close_lists()

    def close_code(self) -> None:
        attrs = f' class="language-{self.code_lang}"' if self.code_lang else ""
        body = "".join(f"{escape_html(line)}\n" for line in self.code_lines)
        self.out.append(f"<pre><code{attrs}>{body}</code></pre>")
        self.in_code = False
        self.code_lang = None
        self.code_lines = []

    # ----- scanning -----

    def convert(self) -> str:
        i = 0
        while i < len(self.lines):
            i = self.step(i)
        if self.in_code:
            self.close_code()
        self.close_blocks()
        return "\n".join(self.out).strip()

    def step(self, i: int) -> int:
        """Consume the line at index i (and any lines it owns); return the next index."""
        raw = self.lines[i]
        line = raw.rstrip()

        if self.in_code:
            if line.strip() == "```":
                self.close_code()
            else:
                self.code_lines.append(raw)
            return i + 1

        fence = FENCE_PATTERN.match(line)
        if fence:
            self.close_blocks()
            self.in_code = True
            lang = fence.group(1).strip()
            self.code_lang = lang if FENCE_LANG_PATTERN.match(lang) else None
            return i + 1

        if not line.strip():
            self.close_blocks()
            return i + 1

        if "|" in line and i + 1 < len(self.lines) and is_table_separator(self.lines[i + 1]):
            return self.table(i)

        if HR_PATTERN.match(line):
            self.close_blocks()
            self.out.append("<hr/>")
            return i + 1

        heading = HEADING_PATTERN.match(line)
        if heading:
            self.close_blocks()
            level = len(heading.group(1))
            self.out.append(f"<h{level}>{render_inline(heading.group(2).strip())}</h{level}>")
            return i + 1

        if line.startswith(">"):
            if not self.in_quote:
                self.close_blocks()
                self.out.append("<blockquote>")
                self.in_quote = True
            self.append_paragraph_text(line[1:].lstrip())
            return i + 1
        self.close_quote()

        ul_item = UL_ITEM_PATTERN.match(line)
        if ul_item:
            self.close_paragraph()
            if not self.in_ul:
                self.close_lists()
                self.out.append("<ul>")
                self.in_ul = True
            self.out.append(f"<li>{render_inline(ul_item.group(1))}</li>")
            return i + 1

        ol_item = OL_ITEM_PATTERN.match(line)
        if ol_item:
            self.close_paragraph()
            if not self.in_ol:
                self.close_lists()
                self.out.append("<ol>")
                self.in_ol = True
            self.out.append(f"<li>{render_inline(ol_item.group(1))}</li>")
            return i + 1

        self.close_lists()
        self.append_paragraph_text(line.strip())
        return i + 1

    def append_paragraph_text(self, text: str) -> None:
        if not text:
            self.close_paragraph()
            return
        if self.paragraph is None:
            self.paragraph = []
        self.paragraph.append(render_inline(text))

    def table(self, i: int) -> int:
        self.close_blocks()
        header = parse_table_cells(self.lines[i])
        i += 2
        rows: list[list[str]] = []
        while i < len(self.lines) and "|" in self.lines[i] and not self.lines[i].strip().startswith("#"):
            rows.append(parse_table_cells(self.lines[i]))
            i += 1

        self.out.append("<table>")
        self.out.append("<thead><tr>" + "".join(f"<th>{render_inline(c)}</th>" for c in header) + "</tr></thead>")
        self.out.append("<tbody>")
        for row in rows:
            self.out.append("<tr>" + "".join(f"<td>{render_inline(c)}</td>" for c in row) + "</tr>")
        self.out.append("</tbody>")
        self.out.append("</table>")
        return i


def to_storage_markup(markdown: str) -> str:
    """Convert Markdown to Confluence storage markup. Never fails."""
    return StorageMarkupConverter(markdown or "").convert()


def to_display_markdown(markup: str) -> str:
    """Approximate Markdown for storage/export markup. Lossy, tag-stripping fallback."""
    text = markup or ""
    for pattern, replacement in DISPLAY_RULES:
        text = pattern.sub(replacement, text)
    text = TAG_PATTERN.sub("", text)
    text = html.unescape(text)
    text = EXTRA_BLANK_LINES_PATTERN.sub("\n\n", text)
    return text.strip()


def normalize_body(content: str, body_format: str | None) -> tuple[str, str]:
    """Map tool content + format to (body value, Confluence representation)."""
    fmt = (body_format or "markdown").lower()
    if fmt == "storage":
        return content, "storage"
    if fmt == "wiki":
        return content, "wiki"
    return to_storage_markup(content), "storage"
