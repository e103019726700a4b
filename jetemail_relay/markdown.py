"""Minimal markdown to HTML for release notes and README sections.

Rules run in a fixed order; later rules only ever see the HTML produced by
earlier ones as plain text. Nested lists, tables and links are not handled;
inline HTML such as anchors is passed through unchanged. Fenced code blocks
are set aside before the rules run and come back as <pre><code>.
"""

from __future__ import annotations

import html as html_lib
import re
from typing import List, Optional, Tuple

from .models import ReadmeSections

_FENCE_BLOCK = re.compile(
    r"^(?P<fence>```|~~~)[^\n]*\n(?P<code>.*?)^(?P=fence)[ \t]*$",
    re.DOTALL | re.MULTILINE,
)
_FENCE_PLACEHOLDER = re.compile(r"\x00(\d+)\x00")
_HEADINGS = (
    (re.compile(r"^###[ \t]*(.*?)[ \t]*$", re.MULTILINE), r"<h3>\1</h3>"),
    (re.compile(r"^##[ \t]*(.*?)[ \t]*$", re.MULTILINE), r"<h2>\1</h2>"),
    (re.compile(r"^#[ \t]*(.*?)[ \t]*$", re.MULTILINE), r"<h1>\1</h1>"),
)
# A run of three asterisks counts as bold, so "***x***" never nests.
_BOLD = re.compile(r"\*{2,3}(?=\S)([^\n]+?)\*{2,3}")
# "* item" list markers are followed by whitespace and never match here.
_EMPHASIS = re.compile(r"\*(?=[^\s*])([^*\n<>]+?)\*")
_CODE = re.compile(r"`([^`\n]+)`")
_LIST_ITEM = re.compile(r"^[ \t]*[-*][ \t]+(.*?)[ \t]*$", re.MULTILINE)
_LIST_RUN = re.compile(r"<li>.*?</li>(?:\s*<li>.*?</li>)*")

_ATX_HEADING = re.compile(r"^(#{1,6})[ \t]+(.*?)(?:[ \t]+#+)?[ \t]*$")
_FENCE_LINE = re.compile(r"^[ \t]*(```|~~~)")


def render_markdown(text: str) -> str:
    fenced: List[str] = []

    def stash(match: re.Match[str]) -> str:
        fenced.append(match.group("code").rstrip("\n"))
        return f"\x00{len(fenced) - 1}\x00"

    html = _FENCE_BLOCK.sub(stash, text.strip())
    for pattern, replacement in _HEADINGS:
        html = pattern.sub(replacement, html)
    html = _BOLD.sub(r"<strong>\1</strong>", html)
    html = _EMPHASIS.sub(r"<em>\1</em>", html)
    html = _CODE.sub(r"<code>\1</code>", html)
    html = _LIST_ITEM.sub(r"<li>\1</li>", html)
    html = _LIST_RUN.sub(lambda m: f"<ul>{m.group(0)}</ul>", html)
    return _FENCE_PLACEHOLDER.sub(
        lambda m: f"<pre><code>{html_lib.escape(fenced[int(m.group(1))], quote=False)}</code></pre>",
        html,
    )


def parse_readme_sections(markdown: str) -> ReadmeSections:
    """
    Pull the description and installation blocks out of a README.

    - description: text after the leading "# Title" up to the next heading
    - installation: text under an "Installation" heading (any level, any case)
      up to the next heading

    Only ATX headings outside fenced code blocks end a section, so a
    "# comment" line inside a shell example stays part of its block.
    """
    sections = _split_sections(markdown)
    description: Optional[str] = None
    if sections and sections[0][0] == 1:
        description = _render_block(sections[0][2])
    installation: Optional[str] = None
    for _, title, body in sections:
        if title.lower() == "installation":
            installation = _render_block(body)
            break
    return ReadmeSections(description=description, installation=installation)


def _split_sections(markdown: str) -> List[Tuple[int, str, List[str]]]:
    """Split into (level, title, body lines); text before the first heading is dropped."""
    sections: List[Tuple[int, str, List[str]]] = []
    in_fence = False
    for line in markdown.splitlines():
        if _FENCE_LINE.match(line):
            in_fence = not in_fence
        elif not in_fence:
            heading = _ATX_HEADING.match(line)
            if heading is not None:
                sections.append((len(heading.group(1)), heading.group(2).strip(), []))
                continue
        if sections:
            sections[-1][2].append(line)
        elif line.strip():
            # Content ahead of any heading means there is no leading title.
            sections.append((0, "", [line]))
    return sections


def _render_block(lines: List[str]) -> str | None:
    block = "\n".join(lines).strip()
    if not block:
        return None
    return render_markdown(block)
