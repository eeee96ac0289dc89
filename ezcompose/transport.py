"""Transports hand a built message to something that delivers it.

A transport only needs a ``send`` method matching :class:`Transport`. It
returns ``False`` when delivery failed; the composer never retries.
"""

from email.parser import HeaderParser
from email.utils import getaddresses
from re import IGNORECASE, MULTILINE, compile as re_compile
from smtplib import SMTP, SMTP_SSL, SMTPException
from subprocess import SubprocessError, run
from typing import Protocol, Union

from loguru import logger

from .encoding import prep_newlines


BCC_HEADER = re_compile(r"^Bcc:.*(?:\r?\n[ \t].*)*\r?\n", IGNORECASE | MULTILINE)


class Transport(Protocol):
    def send(self, to: str, subject: str, body: str, headers: str, envelope_from: str) -> bool:
        """Delivers one message.

        Args:
            to (str): Formatted ``To`` list, e.g. ``"Jane <j@x.com>, k@y.com"``.
            subject (str): Message subject.
            body (str): The body block.
            headers (str): The header block, ending with a blank line.
            envelope_from (str): Envelope sender (bounce address).

        Returns:
            bool: ``True`` if the message was accepted for delivery.
        """
        ...


def recipients_from_headers(headers: str) -> list[str]:
    """Collects the unique To/Cc/Bcc addresses of a header block."""
    parsed = HeaderParser().parsestr(headers, headersonly=True)
    values = [value for name in ("To", "Cc", "Bcc") for value in parsed.get_all(name, [])]

    seen: dict[str, str] = {}
    for _, address in getaddresses(values):
        if address:
            seen.setdefault(address.lower(), address)
    return list(seen.values())


def strip_bcc(headers: str) -> str:
    """Removes the Bcc header (including folded lines) from a header block."""
    return BCC_HEADER.sub("", headers)


class SmtpTransport:
    """Delivers messages over SMTP using :mod:`smtplib`.

    Port 465 uses implicit TLS. Other ports connect in plain text and upgrade
    with STARTTLS when ``starttls`` is true, which defaults to port 587 only.
    The message is sent as bytes in ``charset``, which must match the charset
    the message was composed with.

    Example:
        transport = SmtpTransport("smtp.domain.com", 587, username="me@domain.com", password="secret")
        mail = EzMail(transport=transport)
    """

    def __init__(
        self,
        server: str,
        port: int = 25,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 30,
        starttls: bool | None = None,
        charset: str = "utf-8",
    ):
        if not server:
            raise ValueError("SMTP server must be a non-empty string.")
        self.server = server
        self.port = port
        self.username = username
        self.password = password
        self.timeout = timeout
        self.starttls = port == 587 if starttls is None else starttls
        self.charset = charset

    def _connect(self) -> Union[SMTP, SMTP_SSL]:
        """Opens (and authenticates, if credentials are set) an SMTP connection."""
        if self.port == 465:
            smtp = SMTP_SSL(self.server, self.port, timeout=self.timeout)
        else:
            smtp = SMTP(self.server, self.port, timeout=self.timeout)
            if self.starttls:
                smtp.starttls()

        if self.username:
            smtp.login(self.username, self.password or "")
        return smtp

    def send(self, to: str, subject: str, body: str, headers: str, envelope_from: str) -> bool:
        recipients = recipients_from_headers(headers) or [address for _, address in getaddresses([to]) if address]
        message = prep_newlines(strip_bcc(headers) + body, "\r\n").encode(self.charset)

        try:
            with self._connect() as smtp:
                refused = smtp.sendmail(envelope_from, recipients, message)
        except (SMTPException, OSError) as e:
            logger.error(f"SMTP delivery via {self.server}:{self.port} failed: {e}")
            return False

        if refused:
            logger.warning(f"SMTP server refused recipients: {', '.join(refused)}")
        logger.info(f"Delivered {subject!r} to {len(recipients) - len(refused)} recipient(s) via {self.server}")
        return True


class SendmailTransport:
    """Pipes messages to a local MTA (``sendmail -oi -f <from> -t``).

    The MTA reads the recipients from the To/Cc/Bcc headers and removes Bcc.
    The message is written to its stdin encoded in ``charset``.
    """

    def __init__(self, path: str = "/usr/sbin/sendmail", timeout: float = 30, charset: str = "utf-8"):
        self.path = path
        self.timeout = timeout
        self.charset = charset

    def send(self, to: str, subject: str, body: str, headers: str, envelope_from: str) -> bool:
        command = [self.path, "-oi", "-f", envelope_from, "-t"]
        try:
            completed = run(
                command,
                input=(headers + body).encode(self.charset),
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, SubprocessError) as e:
            logger.error(f"Could not run {self.path}: {e}")
            return False

        if completed.returncode != 0:
            stderr = completed.stderr.decode("utf-8", errors="replace").strip()
            logger.warning(f"{self.path} exited with {completed.returncode}: {stderr}")
            return False

        logger.info(f"Handed {subject!r} for {to} to {self.path}")
        return True
