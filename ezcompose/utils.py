from os.path import isfile, splitext
from re import compile as re_compile

from .errors import AttachmentNotFound, TemplateNotFound


TEMPLATE_EXTENSIONS = (".html", ".htm", ".j2", ".jinja", ".jinja2")

_ATOM = r"[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+"
_LABEL = r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"

EMAIL_PATTERN = re_compile(rf"^{_ATOM}(?:\.{_ATOM})*@{_LABEL}(?:\.{_LABEL})+$")


def is_valid_email(address: str) -> bool:
    """Checks an address against the common local-part@domain grammar.

    The local part is a dot-separated run of RFC 5322 atoms. The domain must
    have at least two labels, each 1-63 characters, without leading or
    trailing hyphens.

    Args:
        address (str): The bare email address, without display name.

    Returns:
        bool: ``True`` if the address is syntactically valid.

    Example:
        >>> is_valid_email("user@example.com")
        True
        >>> is_valid_email("not-an-email")
        False
    """
    if not isinstance(address, str) or len(address) > 254:
        return False
    return EMAIL_PATTERN.match(address) is not None


def validate_path(path: str) -> None:
    """Ensures ``path`` points at an existing regular file.

    Raises:
        ValueError: If ``path`` is not a non-empty string.
        AttachmentNotFound: If the file does not exist.
    """
    if not isinstance(path, str) or not path:
        raise ValueError("Attachment path must be a non-empty string.")
    if not isfile(path):
        raise AttachmentNotFound(f"Email attachment not found: {path}")


def validate_template(file: str) -> None:
    """Ensures ``file`` is an existing HTML/Jinja2 template.

    Raises:
        ValueError: If the extension is not a known template extension.
        TemplateNotFound: If the file does not exist.
    """
    if not isinstance(file, str) or splitext(file)[1].lower() not in TEMPLATE_EXTENSIONS:
        raise ValueError(f"Template must be one of {', '.join(TEMPLATE_EXTENSIONS)}: {file!r}")
    if not isfile(file):
        raise TemplateNotFound(f"Template not found: {file}")
