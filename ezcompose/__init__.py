"""EZCompose package initialization module.

This package builds RFC 822/2045 email messages: plain or HTML bodies with
an optional plain-text alternative, inline images and file attachments,
nested into the matching multipart structure and handed to a transport
(SMTP or a local sendmail).

Modules:
    core (module): The ``EzMail`` draft and its send pipeline.
    addresses (module): Recipient lists, formatting and validation.
    attachments (module): Attachment encoding, Content-IDs and MIME types.
    encoding (module): Transfer encodings and UTF-8 safe line wrapping.
    mailtype (module): Classification of a draft into a multipart shape.
    builder (module): Header and MIME body assembly.
    transport (module): SMTP and sendmail delivery.
    config (module): Configuration model and environment defaults.

Example:
    from ezcompose import EzMail, SmtpTransport

    mail = EzMail(transport=SmtpTransport("smtp.domain.com", 587, "me@domain.com", "secret"))
    mail.set_from("me@domain.com").to("recipient@domain.com")
    mail.set_subject("Hello!")
    mail.set_html_body("<p>This is a test email.</p>")
    mail.send()
"""

from .addresses import AddressBook, AddressList, Recipient, Role
from .attachments import DEFAULT_MIME_TABLE, Attachment, AttachmentStore, MimeTable
from .builder import BoundarySet, BuiltMessage, MessageBuilder
from .config import MailConfig, MailSettings, Priority, get_settings
from .core import EzMail, SendResult, SendStatus
from .encoding import encode_string, wrap_text
from .errors import (
    AttachmentNotFound,
    EzComposeError,
    InvalidAttachment,
    InvalidContentType,
    MissingRecipient,
    MissingSender,
    TemplateNotFound,
    UnsupportedEncoding,
)
from .mailtype import MailType, classify
from .transport import SendmailTransport, SmtpTransport, Transport

__all__ = [
    "AddressBook",
    "AddressList",
    "Attachment",
    "AttachmentNotFound",
    "AttachmentStore",
    "BoundarySet",
    "BuiltMessage",
    "DEFAULT_MIME_TABLE",
    "EzComposeError",
    "EzMail",
    "InvalidAttachment",
    "InvalidContentType",
    "MailConfig",
    "MailSettings",
    "MailType",
    "MessageBuilder",
    "MimeTable",
    "MissingRecipient",
    "MissingSender",
    "Priority",
    "Recipient",
    "Role",
    "SendResult",
    "SendStatus",
    "SendmailTransport",
    "SmtpTransport",
    "TemplateNotFound",
    "Transport",
    "UnsupportedEncoding",
    "classify",
    "encode_string",
    "get_settings",
    "wrap_text",
]
