from enum import Enum
from itertools import product


class MailType(str, Enum):
    """Structural shape of a message; selects the body layout in the builder."""

    PLAIN = "plain"
    PLAIN_ATTACH = "plain_attach"
    HTML = "html"
    HTML_ALT = "html_alt"
    HTML_INLINE = "html_inline"
    HTML_ATTACH = "html_attach"
    HTML_ALT_INLINE = "html_alt_inline"
    HTML_ALT_ATTACH = "html_alt_attach"
    HTML_INLINE_ATTACH = "html_inline_attach"
    HTML_ALT_INLINE_ATTACH = "html_alt_inline_attach"

    @property
    def is_multipart(self) -> bool:
        return self not in (MailType.PLAIN, MailType.HTML)


# (has_alt, has_inline, has_attachments) -> MailType for html messages.
_HTML_TYPES = {
    (False, False, False): MailType.HTML,
    (True, False, False): MailType.HTML_ALT,
    (False, True, False): MailType.HTML_INLINE,
    (False, False, True): MailType.HTML_ATTACH,
    (True, True, False): MailType.HTML_ALT_INLINE,
    (True, False, True): MailType.HTML_ALT_ATTACH,
    (False, True, True): MailType.HTML_INLINE_ATTACH,
    (True, True, True): MailType.HTML_ALT_INLINE_ATTACH,
}

# (is_html, has_alt, has_inline, has_attachments) -> MailType, for every combination.
# Plain messages ignore the alt body and inline parts.
DECISION_TABLE: dict[tuple[bool, bool, bool, bool], MailType] = {
    (is_html, has_alt, has_inline, has_attachments): (
        _HTML_TYPES[has_alt, has_inline, has_attachments]
        if is_html
        else MailType.PLAIN_ATTACH if has_attachments else MailType.PLAIN
    )
    for is_html, has_alt, has_inline, has_attachments in product((False, True), repeat=4)
}


def classify(is_html: bool, alt_body: str = "", inline_count: int = 0, attachment_count: int = 0) -> MailType:
    """Returns the mail type for a draft.

    Plain-text messages ignore the alt body and inline attachments; an alt
    body only counts when it has non-whitespace content.

    Example:
        >>> classify(True, "plain version", 0, 1)
        <MailType.HTML_ALT_ATTACH: 'html_alt_attach'>
    """
    flags = (bool(is_html), bool(alt_body and alt_body.strip()), inline_count > 0, attachment_count > 0)
    return DECISION_TABLE[flags]
