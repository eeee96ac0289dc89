from html import unescape
from re import IGNORECASE, DOTALL, compile as re_compile
from typing import Callable

from .encoding import prep_newlines, wrap_text


HTML_COMMENT = re_compile(r"<!--.*?-->", DOTALL)
CSS_COMMENT = re_compile(r"/\*.*?\*/", DOTALL)
RESOURCE_ATTRIBUTE = re_compile(r'\b(src|background)="([^"]*)"', IGNORECASE)
NON_TEXT_BLOCK = re_compile(r"<(head|title|style|script)\b[^>]*>.*?</\1\s*>", IGNORECASE | DOTALL)
TAG = re_compile(r"<[^>]+>")

EXTERNAL_PREFIXES = ("http://", "https://", "cid:")


def strip_comments(html: str) -> str:
    """Removes HTML and CSS comments."""
    return CSS_COMMENT.sub("", HTML_COMMENT.sub("", html))


def is_local_resource(url: str) -> bool:
    """Whether a ``src``/``background`` value points at a local file to embed."""
    return bool(url) and not url.lower().startswith(EXTERNAL_PREFIXES)


def rewrite_resources(html: str, embed: Callable[[str], str]) -> str:
    """Replaces every local ``src``/``background`` value with ``embed(value)``.

    ``embed`` receives the original attribute value and returns the new one,
    typically a ``cid:`` reference after attaching the file.
    """

    def replace(match):
        attribute, url = match.groups()
        if not is_local_resource(url):
            return match.group(0)
        return f'{attribute}="{embed(url)}"'

    return RESOURCE_ATTRIBUTE.sub(replace, html)


def generate_alt(html: str, wordwrap: int | None = 76, newline: str = "\n") -> str:
    """Derives a plain-text alternative from an HTML body.

    Head, title, style and script blocks are dropped together with all other
    tags, entities are decoded, lines are trimmed, runs of blank lines are
    collapsed to one and the result is wrapped at ``wordwrap`` characters.

    Example:
        >>> generate_alt("<h1>Hi</h1>\\n\\n\\n<p>there</p>")
        'Hi\\n\\nthere'
    """
    text = unescape(TAG.sub("", NON_TEXT_BLOCK.sub("", html))).strip()

    lines = []
    previous_blank = False
    for line in prep_newlines(text, "\n").split("\n"):
        line = line.strip()
        if line or not previous_blank:
            lines.append(line)
        previous_blank = not line

    text = newline.join(lines)
    if not wordwrap:
        return text
    return wrap_text(text, wordwrap, newline=newline).rstrip(newline)
