"""Assembles the header block and MIME body block of a message.

The body layout depends on the :class:`~ezcompose.mailtype.MailType`:

==========================  ======================  ==========================================
mail type                   top-level content type  layout
==========================  ======================  ==========================================
plain, html                 text/plain, text/html   the body itself
plain_attach, html_attach   multipart/related       text + attachments under B0
html_alt                    multipart/alternative   alt text + html under B0
html_inline                 multipart/alternative   html + inline parts under B0
html_alt_inline             multipart/alternative   alt text + related B1 (html + inline)
html_alt_attach,            multipart/mixed         alternative B1 (alt/html/inline) and
html_inline_attach                                  attachments under B0
html_alt_inline_attach      multipart/mixed         alternative B1 (alt text + related B2
                                                    (html + inline)) and attachments under B0
==========================  ======================  ==========================================
"""

from dataclasses import dataclass
from typing import Iterable, Mapping, NamedTuple
from uuid import uuid4

from loguru import logger

from .attachments import Attachment
from .encoding import MAX_LINE_LENGTH
from .errors import InvalidContentType
from .mailtype import MailType


HEADER_ORDER = (
    "Date",
    "Return-Path",
    "To",
    "Subject",
    "From",
    "Cc",
    "Bcc",
    "Reply-To",
    "Message-ID",
    "MIME-Version",
    "X-Priority",
    "X-Mailer",
    "Content-Transfer-Encoding",
    "Content-Type",
)

CONTENT_TYPES = {
    MailType.PLAIN: "text/plain",
    MailType.HTML: "text/html",
    MailType.PLAIN_ATTACH: "multipart/related",
    MailType.HTML_ATTACH: "multipart/related",
    MailType.HTML_ALT: "multipart/alternative",
    MailType.HTML_INLINE: "multipart/alternative",
    MailType.HTML_ALT_INLINE: "multipart/alternative",
    MailType.HTML_ALT_ATTACH: "multipart/mixed",
    MailType.HTML_INLINE_ATTACH: "multipart/mixed",
    MailType.HTML_ALT_INLINE_ATTACH: "multipart/mixed",
}


class BoundarySet(NamedTuple):
    """The three boundaries of one send, all derived from a single seed."""

    b0: str
    b1: str
    b2: str

    @classmethod
    def generate(cls, seed: str | None = None) -> "BoundarySet":
        seed = seed or uuid4().hex
        return cls(f"B1_{seed}", f"B2_{seed}", f"B3_{seed}")


@dataclass(frozen=True)
class BuiltMessage:
    header_block: str
    body_block: str

    def as_string(self) -> str:
        """Headers and body as one RFC 822 message."""
        return self.header_block + self.body_block


def _mail_type(value) -> MailType:
    try:
        return MailType(value)
    except ValueError:
        raise InvalidContentType(f"Invalid content-type {value!r}") from None


def content_type_for(mail_type: MailType, charset: str, boundary: str, newline: str = "\n") -> str:
    """Returns the top-level Content-Type header value.

    Raises:
        InvalidContentType: If ``mail_type`` is not a known mail type.
    """
    mail_type = _mail_type(mail_type)
    content_type = CONTENT_TYPES[mail_type]

    if mail_type.is_multipart:
        return f'{content_type};{newline}\tboundary="{boundary}"'
    return f'{content_type}; charset="{charset}"'


class MessageBuilder:
    """Renders headers and a body for one classified draft.

    Args:
        charset (str): Charset announced on text parts.
        encoding (str): Transfer encoding the text bodies were encoded with.
        newline (str): Line separator used throughout the message.
        width (int): Line width of base64 attachment bodies.
    """

    def __init__(self, charset: str = "utf-8", encoding: str = "8bit", newline: str = "\n", width: int = MAX_LINE_LENGTH):
        self.charset = charset
        self.encoding = encoding
        self.newline = newline
        self.width = width
        self._layouts = {
            MailType.PLAIN: self._single,
            MailType.HTML: self._single,
            MailType.PLAIN_ATTACH: self._related_attach,
            MailType.HTML_ATTACH: self._related_attach,
            MailType.HTML_ALT: self._alt,
            MailType.HTML_INLINE: self._inline,
            MailType.HTML_ALT_INLINE: self._alt_inline,
            MailType.HTML_ALT_ATTACH: self._mixed,
            MailType.HTML_INLINE_ATTACH: self._mixed,
            MailType.HTML_ALT_INLINE_ATTACH: self._mixed_alt_inline,
        }

    def build(
        self,
        mail_type: MailType,
        boundaries: BoundarySet,
        headers: Mapping[str, str],
        body: str,
        alt_body: str = "",
        inline: Iterable[Attachment] = (),
        attachments: Iterable[Attachment] = (),
    ) -> BuiltMessage:
        """Builds the message.

        Args:
            mail_type (MailType): Result of :func:`~ezcompose.mailtype.classify`.
            boundaries (BoundarySet): Fresh boundaries for this send.
            headers (Mapping[str, str]): Top-level headers other than the
                content headers, which are derived from ``mail_type``.
            body (str): Encoded and wrapped main body.
            alt_body (str): Encoded and wrapped alternative body.
            inline (Iterable[Attachment]): Inline parts.
            attachments (Iterable[Attachment]): Regular attachments.

        Returns:
            BuiltMessage: The header and body blocks.

        Raises:
            InvalidContentType: If ``mail_type`` has no layout.
        """
        mail_type = _mail_type(mail_type)
        layout = self._layouts[mail_type]

        headers = dict(headers)
        if not mail_type.is_multipart:
            headers["Content-Transfer-Encoding"] = self.encoding
        headers["Content-Type"] = content_type_for(mail_type, self.charset, boundaries.b0, self.newline)

        logger.debug(f"Building {mail_type.value} message with boundary {boundaries.b0}")
        body_block = layout(mail_type, boundaries, body, alt_body, list(inline), list(attachments))
        return BuiltMessage(self.header_block(headers), body_block)

    def header_block(self, headers: Mapping[str, str]) -> str:
        nl = self.newline
        lines = [f"{name}: {headers[name]}{nl}" for name in HEADER_ORDER if headers.get(name)]
        return "".join(lines) + nl

    def _text_part(self, boundary: str, subtype: str, text: str) -> str:
        nl = self.newline
        text = text.rstrip("\r\n")
        return (
            f"--{boundary}{nl}"
            f'Content-Type: text/{subtype}; charset="{self.charset}"{nl}'
            f"Content-Transfer-Encoding: {self.encoding}{nl}{nl}"
            f"{text}{nl}{nl}"
        )

    def _container_part(self, boundary: str, kind: str, inner: str) -> str:
        nl = self.newline
        return f"--{boundary}{nl}Content-Type: multipart/{kind};{nl}\tboundary=\"{inner}\"{nl}{nl}"

    def _attachment_parts(self, attachments: list[Attachment], boundary: str) -> str:
        nl = self.newline
        parts = []
        for attachment in attachments:
            part = f"--{boundary}{nl}"
            part += f'Content-Type: {attachment.mime_type}; name="{attachment.filename}"{nl}'
            part += f"Content-Transfer-Encoding: base64{nl}"
            if attachment.inline:
                part += f"Content-ID: {attachment.header_content_id}{nl}"
            part += f'Content-Disposition: {attachment.disposition}; filename="{attachment.filename}"{nl}{nl}'
            part += f"{attachment.encode(self.width, nl)}{nl}{nl}"
            parts.append(part)
        return "".join(parts)

    def _close(self, boundary: str, nested: bool = False) -> str:
        return f"--{boundary}--" + (self.newline * 2 if nested else "")

    def _single(self, mail_type, boundaries, body, alt_body, inline, attachments):
        return body

    def _related_attach(self, mail_type, boundaries, body, alt_body, inline, attachments):
        b0 = boundaries.b0
        subtype = "html" if mail_type is MailType.HTML_ATTACH else "plain"
        return self._text_part(b0, subtype, body) + self._attachment_parts(attachments, b0) + self._close(b0)

    def _alt(self, mail_type, boundaries, body, alt_body, inline, attachments):
        b0 = boundaries.b0
        return self._text_part(b0, "plain", alt_body) + self._text_part(b0, "html", body) + self._close(b0)

    def _inline(self, mail_type, boundaries, body, alt_body, inline, attachments):
        b0 = boundaries.b0
        return self._text_part(b0, "html", body) + self._attachment_parts(inline, b0) + self._close(b0)

    def _alt_inline(self, mail_type, boundaries, body, alt_body, inline, attachments):
        b0, b1 = boundaries.b0, boundaries.b1
        return (
            self._text_part(b0, "plain", alt_body)
            + self._container_part(b0, "related", b1)
            + self._text_part(b1, "html", body)
            + self._attachment_parts(inline, b1)
            + self._close(b1, nested=True)
            + self._close(b0)
        )

    def _mixed(self, mail_type, boundaries, body, alt_body, inline, attachments):
        b0, b1 = boundaries.b0, boundaries.b1
        out = self._container_part(b0, "alternative", b1)
        if mail_type is MailType.HTML_ALT_ATTACH:
            out += self._text_part(b1, "plain", alt_body)
        out += self._text_part(b1, "html", body)
        if mail_type is MailType.HTML_INLINE_ATTACH:
            out += self._attachment_parts(inline, b1)
        out += self._close(b1, nested=True)
        return out + self._attachment_parts(attachments, b0) + self._close(b0)

    def _mixed_alt_inline(self, mail_type, boundaries, body, alt_body, inline, attachments):
        b0, b1, b2 = boundaries
        return (
            self._container_part(b0, "alternative", b1)
            + self._text_part(b1, "plain", alt_body)
            + self._container_part(b1, "related", b2)
            + self._text_part(b2, "html", body)
            + self._attachment_parts(inline, b2)
            + self._close(b2, nested=True)
            + self._close(b1, nested=True)
            + self._attachment_parts(attachments, b0)
            + self._close(b0)
        )
