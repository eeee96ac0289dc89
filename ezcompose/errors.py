"""Exception types raised by ezcompose.

Fatal conditions (bad input, missing files, broken configuration) are raised
as exceptions. Recoverable outcomes such as failed address validation or a
transport refusing the message are reported through ``SendResult`` instead.
"""


class EzComposeError(Exception):
    """Base class for every error raised by this package."""


class AttachmentNotFound(EzComposeError, FileNotFoundError):
    """The file given as an attachment does not exist."""


class InvalidAttachment(EzComposeError, ValueError):
    """The attachment could not be read or has no content."""


class UnsupportedEncoding(EzComposeError, ValueError):
    """The requested transfer encoding is not one we know how to apply."""


class InvalidContentType(EzComposeError, RuntimeError):
    """The mail type has no matching content type or body layout."""


class MissingRecipient(EzComposeError, ValueError):
    """A send was attempted with empty to, cc and bcc lists."""


class MissingSender(EzComposeError, ValueError):
    """A send was attempted without a from address."""


class TemplateNotFound(EzComposeError, FileNotFoundError):
    """The HTML template passed to ``use_template`` does not exist."""
