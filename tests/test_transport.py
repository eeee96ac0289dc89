"""
Unit tests for the SMTP and sendmail transports.

smtplib and subprocess are patched, nothing is actually delivered.
"""

from smtplib import SMTPAuthenticationError
from subprocess import TimeoutExpired
from unittest.mock import MagicMock, patch

import pytest

from ezcompose.transport import SendmailTransport, SmtpTransport, recipients_from_headers, strip_bcc


HEADERS = (
    "To: You <you@example.com>\n"
    "Subject: Hello\n"
    "From: me@example.com\n"
    "Cc: cc@example.com\n"
    "Bcc: hidden@example.com,\n"
    " YOU@example.com\n"
    "Content-Type: text/plain\n"
    "\n"
)


class TestHeaderHelpers:

    def test_recipients_deduplicated(self):
        assert recipients_from_headers(HEADERS) == ["you@example.com", "cc@example.com", "hidden@example.com"]

    def test_strip_bcc_with_folded_line(self):
        stripped = strip_bcc(HEADERS)
        assert "Bcc" not in stripped
        assert "YOU@example.com" not in stripped
        assert stripped.startswith("To: You <you@example.com>\n")
        assert stripped.endswith("Content-Type: text/plain\n\n")


class TestSmtpTransport:

    @patch("ezcompose.transport.SMTP")
    def test_send(self, smtp_class):
        smtp = smtp_class.return_value.__enter__.return_value
        smtp.sendmail.return_value = {}

        transport = SmtpTransport("smtp.example.com", 25)
        assert transport.send("You <you@example.com>", "Hello", "Hi\n", HEADERS, "me@example.com")

        smtp_class.assert_called_once_with("smtp.example.com", 25, timeout=30)
        smtp_class.return_value.starttls.assert_not_called()
        smtp_class.return_value.login.assert_not_called()

        envelope_from, recipients, message = smtp.sendmail.call_args.args
        assert envelope_from == "me@example.com"
        assert recipients == ["you@example.com", "cc@example.com", "hidden@example.com"]
        assert b"Bcc" not in message
        assert message.endswith(b"\r\n\r\nHi\r\n")
        assert b"\n" not in message.replace(b"\r\n", b"")

    @patch("ezcompose.transport.SMTP")
    def test_starttls_and_login(self, smtp_class):
        smtp_class.return_value.__enter__.return_value.sendmail.return_value = {}

        transport = SmtpTransport("smtp.example.com", 587, username="me@example.com", password="secret")
        assert transport.send("you@example.com", "Hello", "Hi", HEADERS, "me@example.com")

        smtp_class.return_value.starttls.assert_called_once_with()
        smtp_class.return_value.login.assert_called_once_with("me@example.com", "secret")

    @patch("ezcompose.transport.SMTP_SSL")
    def test_implicit_tls(self, smtp_ssl_class):
        smtp_ssl_class.return_value.__enter__.return_value.sendmail.return_value = {}

        assert SmtpTransport("smtp.example.com", 465).send("you@example.com", "Hello", "Hi", HEADERS, "me@example.com")
        smtp_ssl_class.assert_called_once_with("smtp.example.com", 465, timeout=30)

    @patch("ezcompose.transport.SMTP")
    def test_recipients_from_to_when_headers_have_none(self, smtp_class):
        smtp = smtp_class.return_value.__enter__.return_value
        smtp.sendmail.return_value = {}

        SmtpTransport("smtp.example.com").send("You <you@example.com>", "Hello", "Hi", "Subject: Hello\n\n", "me@example.com")

        assert smtp.sendmail.call_args.args[1] == ["you@example.com"]

    @patch("ezcompose.transport.SMTP")
    def test_partially_refused_still_sent(self, smtp_class):
        smtp_class.return_value.__enter__.return_value.sendmail.return_value = {"cc@example.com": (550, b"no")}
        assert SmtpTransport("smtp.example.com").send("you@example.com", "Hello", "Hi", HEADERS, "me@example.com")

    @patch("ezcompose.transport.SMTP")
    def test_authentication_failure(self, smtp_class):
        smtp_class.return_value.login.side_effect = SMTPAuthenticationError(535, b"bad credentials")

        transport = SmtpTransport("smtp.example.com", 587, username="me@example.com", password="wrong")
        assert transport.send("you@example.com", "Hello", "Hi", HEADERS, "me@example.com") is False

    @patch("ezcompose.transport.SMTP")
    def test_connection_failure(self, smtp_class):
        smtp_class.side_effect = ConnectionRefusedError("refused")
        assert SmtpTransport("smtp.example.com").send("you@example.com", "Hello", "Hi", HEADERS, "me@example.com") is False

    @patch("ezcompose.transport.SMTP")
    def test_encodes_with_charset(self, smtp_class):
        smtp = smtp_class.return_value.__enter__.return_value
        smtp.sendmail.return_value = {}

        SmtpTransport("smtp.example.com", charset="iso-8859-1").send("you@example.com", "Hello", "Olá\n", HEADERS, "me@example.com")

        assert smtp.sendmail.call_args.args[2].endswith(b"\r\n\r\nOl\xe1\r\n")

    def test_server_required(self):
        with pytest.raises(ValueError):
            SmtpTransport("")


class TestSendmailTransport:

    @patch("ezcompose.transport.run")
    def test_send(self, run):
        run.return_value = MagicMock(returncode=0, stderr=b"")

        transport = SendmailTransport("/usr/sbin/sendmail")
        assert transport.send("you@example.com", "Hello", "Hi\n", HEADERS, "me@example.com")

        command = run.call_args.args[0]
        assert command == ["/usr/sbin/sendmail", "-oi", "-f", "me@example.com", "-t"]
        assert run.call_args.kwargs["input"] == (HEADERS + "Hi\n").encode("utf-8")

    @patch("ezcompose.transport.run")
    def test_nonzero_exit(self, run):
        run.return_value = MagicMock(returncode=75, stderr=b"temporary failure")
        assert SendmailTransport().send("you@example.com", "Hello", "Hi", HEADERS, "me@example.com") is False

    @patch("ezcompose.transport.run")
    def test_missing_binary(self, run):
        run.side_effect = FileNotFoundError("/usr/sbin/sendmail")
        assert SendmailTransport().send("you@example.com", "Hello", "Hi", HEADERS, "me@example.com") is False

    @patch("ezcompose.transport.run")
    def test_timeout(self, run):
        run.side_effect = TimeoutExpired("sendmail", 30)
        assert SendmailTransport().send("you@example.com", "Hello", "Hi", HEADERS, "me@example.com") is False

    @patch("ezcompose.transport.run")
    def test_encodes_with_charset(self, run):
        run.return_value = MagicMock(returncode=0, stderr=b"")

        SendmailTransport(charset="iso-8859-1").send("you@example.com", "Hello", "Olá\n", HEADERS, "me@example.com")

        assert run.call_args.kwargs["input"].endswith(b"\n\nOl\xe1\n")
