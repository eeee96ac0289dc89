from dataclasses import dataclass, field
from email.header import Header
from email.utils import formatdate
from enum import Enum
from typing import Any
from uuid import uuid4

from jinja2 import Template  # type: ignore
from loguru import logger

from . import htmlbody
from .addresses import AddressBook, AddressInput, Recipient, Role
from .attachments import DEFAULT_MIME_TABLE, AttachmentStore, MimeTable, content_id_for
from .builder import BoundarySet, BuiltMessage, MessageBuilder
from .config import MailConfig, MailSettings, Priority, get_settings
from .encoding import MAX_LINE_LENGTH, encode_string, wrap_text
from .errors import MissingRecipient, MissingSender
from .mailtype import MailType, classify
from .transport import Transport
from .utils import validate_template


class SendStatus(str, Enum):
    """Outcome of :meth:`EzMail.send`."""

    SEND = "send"
    FAILED_VALIDATION = "failed_validation"
    FAILED_SEND = "failed_send"


@dataclass(frozen=True)
class SendResult:
    """Outcome of :meth:`EzMail.send`.

    Attributes:
        status (SendStatus): ``SEND``, ``FAILED_VALIDATION`` or ``FAILED_SEND``.
        invalid_addresses (list): ``(role, recipient)`` pairs that failed
            validation; empty unless ``status`` is ``FAILED_VALIDATION``.
        message (BuiltMessage | None): The message handed to the transport.
        mail_type (MailType | None): The classified shape of the message.
    """

    status: SendStatus
    invalid_addresses: list[tuple[Role, Recipient]] = field(default_factory=list)
    message: BuiltMessage | None = None
    mail_type: MailType | None = None

    @property
    def ok(self) -> bool:
        return self.status is SendStatus.SEND


def encode_header(value: str, charset: str = "utf-8", newline: str = "\n") -> str:
    """Makes a header value safe: no line breaks, RFC 2047 encoded if non-ASCII."""
    value = " ".join(str(value).splitlines())
    if value.isascii():
        return value
    return Header(value, charset).encode(linesep=newline)


def message_id(sender_email: str) -> str:
    domain = sender_email.partition("@")[2]
    return f"<{uuid4().hex}@{domain}>" if domain else f"<{uuid4().hex}>"


class EzMail:
    """A message draft and the pipeline that sends it.

    The draft is changed freely through fluent setters. :meth:`send` checks
    the recipients and sender, validates addresses, classifies the message,
    builds the header and body blocks and hands them to the transport. All
    per-send state (headers, boundaries, mail type) is rebuilt on every call,
    so a draft can be sent again after changing its recipients.

    A draft is meant to be used by one caller at a time. Send concurrently by
    creating one ``EzMail`` per message; only the MIME table and the
    transport are shared.

    Example:
        mail = EzMail(transport=SmtpTransport("smtp.domain.com", 587, "me@domain.com", "secret"))
        mail.set_from("me@domain.com", "Me").to("user@domain.com")
        mail.set_subject("Welcome!")
        mail.set_html_body('<h1>Hello!</h1><img src="images/logo.png">')
        mail.attach("report.pdf")
        result = mail.send()
        if result.status is SendStatus.FAILED_VALIDATION:
            print(result.invalid_addresses)
    """

    def __init__(
        self,
        config: MailConfig | dict | None = None,
        transport: Transport | None = None,
        mime_table: MimeTable = DEFAULT_MIME_TABLE,
        settings: MailSettings | None = None,
    ):
        """Initializes an empty draft.

        Args:
            config (MailConfig | dict, optional): Message configuration. A dict
                is validated into a :class:`MailConfig`. Defaults to the
                values of :func:`~ezcompose.config.get_settings`.
            transport (Transport, optional): Delivery channel. Defaults to the
                transport selected by the settings' ``driver``,
                sending in the configured charset.
            mime_table (MimeTable): Shared extension to MIME type table.
            settings (MailSettings, optional): Source of defaults, including
                the default sender.
        """
        settings = settings or get_settings()

        if config is None:
            config = settings.mail_config()
        elif not isinstance(config, MailConfig):
            config = MailConfig.model_validate(config)

        self.config: MailConfig = config.model_copy()
        if transport is None:
            transport = settings.model_copy(update={"charset": self.config.charset}).make_transport()
        self.transport: Transport = transport

        self.addresses = AddressBook()
        self.attachments = AttachmentStore(mime_table)

        self.subject = ""
        self.body = ""
        self.alt_body = ""

        self.invalid_addresses: list[tuple[Role, Recipient]] = []
        self.headers: dict[str, str] = {}
        self.boundaries: BoundarySet | None = None
        self.mail_type: MailType | None = None

        if settings.from_email:
            self.set_from(settings.from_email, settings.from_name)

    # Configuration

    def get_config(self, key: str, default: Any = None) -> Any:
        """Returns a configuration value, or ``default`` if there is no such key."""
        return getattr(self.config, key, default)

    def set_config(self, key: str, value: Any) -> "EzMail":
        """Sets a configuration value.

        Raises:
            ValueError: If the key is unknown or the value invalid.
        """
        setattr(self.config, key, value)
        return self

    def set_priority(self, priority: Priority | int) -> "EzMail":
        self.config.priority = priority
        return self

    # Content

    def set_subject(self, subject: str) -> "EzMail":
        self.subject = str(subject)
        return self

    def set_body(self, body: str) -> "EzMail":
        """Sets the body as is; whether it is HTML follows ``config.is_html``."""
        self.body = str(body)
        return self

    def set_alt_body(self, alt_body: str) -> "EzMail":
        """Sets the plain-text alternative shown by clients without HTML.

        Only used when the message is HTML; a blank alt body is ignored.

        Example:
            set_html_body("<p>Hi</p>", generate_alt=False).set_alt_body("Hi")
        """
        self.alt_body = str(alt_body)
        return self

    def set_html_body(self, html: str, generate_alt: bool | None = None, auto_attach: bool | None = None) -> "EzMail":
        """Sets an HTML body and marks the message as HTML.

        HTML and CSS comments are removed. With auto-attach, every ``src`` or
        ``background`` attribute that is not an ``http(s)://`` URL or a
        ``cid:`` reference is attached inline and rewritten to its ``cid:``.

        Args:
            html (str): The HTML body.
            generate_alt (bool, optional): Derive the plain-text alt body from
                the HTML. Defaults to ``config.generate_alt``.
            auto_attach (bool, optional): Embed local images. Defaults to
                ``config.auto_attach``.

        Raises:
            AttachmentNotFound: If a referenced local file does not exist.
            InvalidAttachment: If a referenced file is empty or unreadable.

        Example:
            set_html_body('<p>Hi</p><img src="img/logo.png">')
            # body now contains src="cid:<md5 of 'logo.png'>"
        """
        generate_alt = self.config.generate_alt if generate_alt is None else generate_alt
        auto_attach = self.config.auto_attach if auto_attach is None else auto_attach

        html = htmlbody.strip_comments(str(html))
        if auto_attach:
            html = htmlbody.rewrite_resources(html, self._embed)

        self.config.is_html = True
        self.body = html
        if generate_alt:
            self.alt_body = htmlbody.generate_alt(html, self.config.wordwrap, self.config.newline)
        return self

    def _embed(self, path: str) -> str:
        cid = content_id_for(path)
        if not self.attachments.has(cid):
            self.attach(path, inline=True, cid=cid)
        return cid

    def use_template(self, file: str, **variables) -> "EzMail":
        """Renders a Jinja2 HTML template into the body.

        The rendered HTML goes through :meth:`set_html_body`, so local images
        are embedded and the alt body generated according to the config.

        Args:
            file (str): Path to the template file.
            **variables: Values for the template placeholders.

        Raises:
            ValueError: If the file is not an HTML/Jinja2 template.
            TemplateNotFound: If the file does not exist.

        Example:
            use_template("templates/welcome.html", name="John", version="1.0.0")
        """
        validate_template(file)

        with open(file, "r", encoding="utf-8") as f:
            html = Template(f.read()).render(**variables)
        return self.set_html_body(html)

    def clear_body(self) -> "EzMail":
        self.body = ""
        self.alt_body = ""
        return self

    # Addresses

    def set_from(self, email: str, name: str | None = None) -> "EzMail":
        self.addresses.set_from(email, name)
        return self

    def to(self, email: AddressInput, name: str | None = None) -> "EzMail":
        """Adds to the ``To`` list.

        Args:
            email: An address, a mapping of address to name, or an iterable of
                addresses and ``(address, name)`` pairs.
            name (str, optional): Display name when ``email`` is one address.

        Example:
            to("jane@domain.com", "Jane")
            to({"bob@domain.com": "Bob", "ann@domain.com": None})
            to(["ops@domain.com", "dev@domain.com"])
        """
        self.addresses.add(Role.TO, email, name)
        return self

    def cc(self, email: AddressInput, name: str | None = None) -> "EzMail":
        """Adds to the ``Cc`` list. Accepts the same forms as :meth:`to`.

        Example:
            cc("manager@domain.com", "Manager")
        """
        self.addresses.add(Role.CC, email, name)
        return self

    def bcc(self, email: AddressInput, name: str | None = None) -> "EzMail":
        """Adds to the ``Bcc`` list. Accepts the same forms as :meth:`to`.

        The Bcc header is part of the built header block; transports keep it
        from the recipients.

        Example:
            bcc(["audit@domain.com", "archive@domain.com"])
        """
        self.addresses.add(Role.BCC, email, name)
        return self

    def reply_to(self, email: AddressInput, name: str | None = None) -> "EzMail":
        self.addresses.add(Role.REPLY_TO, email, name)
        return self

    def clear_to(self) -> "EzMail":
        self.addresses.clear(Role.TO)
        return self

    def clear_cc(self) -> "EzMail":
        self.addresses.clear(Role.CC)
        return self

    def clear_bcc(self) -> "EzMail":
        self.addresses.clear(Role.BCC)
        return self

    def clear_reply_to(self) -> "EzMail":
        self.addresses.clear(Role.REPLY_TO)
        return self

    def clear_recipients(self) -> "EzMail":
        """Empties the to, cc and bcc lists."""
        self.addresses.clear(Role.TO, Role.CC, Role.BCC)
        return self

    def clear_addresses(self) -> "EzMail":
        """Empties every address list and removes the sender."""
        self.addresses.clear(*Role)
        self.addresses.clear_from()
        return self

    # Attachments

    def attach(self, file: str, inline: bool = False, cid: str | None = None, mime: str | None = None) -> "EzMail":
        """Attaches a file.

        Args:
            file (str): Path to the file.
            inline (bool): Embed it for ``cid:`` references in the HTML body.
            cid (str, optional): Content-ID, with or without ``cid:``.
                Defaults to the md5 of the file name.
            mime (str, optional): MIME type; looked up by extension if omitted.

        Raises:
            AttachmentNotFound: If the file does not exist.
            InvalidAttachment: If the file is empty or unreadable.

        Example:
            attach("reports/monthly_report.pdf")
            attach("logo.png", inline=True, cid="logo")
        """
        self.attachments.attach_file(file, inline, cid, mime)
        return self

    def attach_bytes(self, contents: bytes, filename: str, inline: bool = False, cid: str | None = None, mime: str | None = None) -> "EzMail":
        """Attaches in-memory content under ``filename``.

        Raises:
            InvalidAttachment: If ``contents`` is empty.
        """
        self.attachments.attach_bytes(contents, filename, inline, cid, mime)
        return self

    def clear_attachments(self) -> "EzMail":
        self.attachments.clear()
        return self

    # Sending

    def get_invalid_addresses(self) -> list[tuple[Role, Recipient]]:
        """Addresses that failed validation on the last :meth:`send`."""
        return list(self.invalid_addresses)

    def _check_preconditions(self) -> Recipient:
        if not self.addresses.has_recipients():
            raise MissingRecipient("Cannot send email without recipients.")
        sender = self.addresses.sender
        if sender is None or not sender.email:
            raise MissingSender("Cannot send without from address.")
        return sender

    def _reset_send_state(self) -> None:
        self.invalid_addresses = []
        self.headers = {}
        self.boundaries = None
        self.mail_type = None

    def _prepare_text(self, text: str) -> str:
        config = self.config
        qp_mode = config.encoding == "quoted-printable"
        encoded = encode_string(text, config.encoding, config.charset, config.newline)

        width = config.wordwrap or (MAX_LINE_LENGTH if qp_mode else None)
        if not width:
            return encoded
        return wrap_text(encoded, width, config.charset, config.newline, qp_mode)

    def _build(self, sender: Recipient) -> BuiltMessage:
        config = self.config
        charset, newline = config.charset, config.newline

        self.headers = {}
        self.boundaries = BoundarySet.generate()
        self.mail_type = classify(
            config.is_html,
            self.alt_body,
            len(self.attachments.inline),
            len(self.attachments.attachment),
        )
        logger.debug(f"Classified message as {self.mail_type.value}")

        self.headers = {
            "Date": formatdate(localtime=True),
            "Return-Path": sender.email,
            "To": self.addresses[Role.TO].format(charset),
            "Subject": encode_header(self.subject, charset, newline),
            "From": sender.format(charset),
            "Cc": self.addresses[Role.CC].format(charset),
            "Bcc": self.addresses[Role.BCC].format(charset),
            "Reply-To": self.addresses[Role.REPLY_TO].format(charset),
            "Message-ID": message_id(sender.email),
            "MIME-Version": "1.0",
            "X-Priority": config.priority.header,
            "X-Mailer": config.useragent,
        }

        builder = MessageBuilder(charset, config.encoding, newline, config.line_width)
        return builder.build(
            self.mail_type,
            self.boundaries,
            self.headers,
            self._prepare_text(self.body),
            self._prepare_text(self.alt_body) if self.alt_body.strip() else "",
            self.attachments.inline.values(),
            self.attachments.attachment.values(),
        )

    def build_message(self) -> BuiltMessage:
        """Builds the header and body blocks without sending.

        Raises:
            MissingRecipient: If to, cc and bcc are all empty.
            MissingSender: If no from address is set.
            UnsupportedEncoding: If the configured encoding is unknown.
        """
        return self._build(self._check_preconditions())

    def send(self, validate: bool | None = None) -> SendResult:
        """Validates, builds and delivers the message.

        Args:
            validate (bool, optional): Check to/cc/bcc address syntax first.
                Defaults to ``config.validate_addresses``.

        Returns:
            SendResult: ``SEND`` when the transport accepted the message,
            ``FAILED_SEND`` when it did not, and ``FAILED_VALIDATION`` (with
            the failing addresses) when validation stopped the send before
            anything was built.

        Raises:
            MissingRecipient: If to, cc and bcc are all empty.
            MissingSender: If no from address is set.

        Example:
            result = mail.send()
            if not result.ok:
                print(result.status, result.invalid_addresses)
        """
        sender = self._check_preconditions()
        validate = self.config.validate_addresses if validate is None else validate

        self._reset_send_state()
        if validate:
            failed = self.addresses.validate()
            if failed:
                self.invalid_addresses = failed
                logger.warning(f"Not sending, {len(failed)} invalid address(es): {', '.join(r.email for _, r in failed)}")
                return SendResult(SendStatus.FAILED_VALIDATION, list(failed))

        message = self._build(sender)
        delivered = self.transport.send(
            self.addresses[Role.TO].format(self.config.charset),
            self.subject,
            message.body_block,
            message.header_block,
            sender.email,
        )

        status = SendStatus.SEND if delivered else SendStatus.FAILED_SEND
        if delivered:
            logger.info(f"Sent {self.mail_type.value} message {self.headers['Message-ID']}")
        else:
            logger.warning(f"Transport failed to send message {self.headers['Message-ID']}")
        return SendResult(status, [], message, self.mail_type)
