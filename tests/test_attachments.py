"""
Unit tests for attachment encoding, Content-IDs and MIME type lookup.
"""

from base64 import b64decode
from hashlib import md5

import pytest

from ezcompose.attachments import (
    DEFAULT_MIME_TABLE,
    AttachmentStore,
    MimeTable,
    content_id_for,
    normalize_content_id,
)
from ezcompose.errors import AttachmentNotFound, InvalidAttachment


@pytest.fixture
def store():
    return AttachmentStore(MimeTable({"png": "image/png", ".PDF": "application/pdf"}))


@pytest.fixture
def report(tmp_path):
    path = tmp_path / "report.pdf"
    path.write_bytes(b"%PDF-1.4 " + bytes(range(256)) * 4)
    return path


class TestMimeTable:

    def test_lookup_by_extension(self):
        table = MimeTable({"png": "image/png"})
        assert table.lookup("images/logo.png") == "image/png"

    def test_lookup_is_case_insensitive(self):
        table = MimeTable({".PDF": "application/pdf"})
        assert table.lookup("REPORT.Pdf") == "application/pdf"

    def test_unknown_extension(self):
        assert MimeTable({}).lookup("data.unknownext") == "application/octet-stream"
        assert MimeTable({}).lookup("README") == "application/octet-stream"

    def test_default_table_is_populated(self):
        assert len(DEFAULT_MIME_TABLE) > 0
        assert DEFAULT_MIME_TABLE.lookup("photo.jpg") == "image/jpeg"

    def test_source_mapping_changes_do_not_leak(self):
        types = {"png": "image/png"}
        table = MimeTable(types)
        types["png"] = "text/plain"
        assert table.lookup("a.png") == "image/png"


class TestContentIds:

    def test_default_is_md5_of_basename(self):
        expected = "cid:" + md5(b"logo.png").hexdigest()
        assert content_id_for("assets/img/logo.png") == expected
        assert content_id_for("logo.png") == expected

    def test_explicit_id_used_verbatim(self):
        assert normalize_content_id("logo", "x.png") == "cid:logo"

    def test_redundant_prefix_stripped(self):
        assert normalize_content_id("cid:logo", "x.png") == "cid:logo"
        assert normalize_content_id("<logo>", "x.png") == "cid:logo"


class TestAttachFile:

    def test_content_round_trips(self, store, report):
        attachment = store.attach_file(str(report))

        assert attachment.content == report.read_bytes()

        lines = attachment.encode().split("\r\n")
        assert all(len(line) <= 76 for line in lines)
        assert b64decode("".join(lines)) == report.read_bytes()

    def test_metadata(self, store, report):
        attachment = store.attach_file(str(report))

        assert attachment.filename == "report.pdf"
        assert attachment.mime_type == "application/pdf"
        assert attachment.disposition == "attachment"
        assert attachment.content_id == content_id_for("report.pdf")
        assert not attachment.inline

    def test_inline_header_content_id(self, store, report):
        attachment = store.attach_file(str(report), inline=True, cid="doc")
        assert attachment.inline
        assert attachment.header_content_id == "<doc>"
        assert "cid:doc" in store.inline

    def test_has(self, store, report):
        store.attach_file(str(report), inline=True, cid="doc")
        assert store.has("doc")
        assert store.has("cid:doc")
        assert not store.has("doc", inline=False)
        assert not store.has("other")

    def test_explicit_mime_wins(self, store, report):
        attachment = store.attach_file(str(report), mime="application/x-custom")
        assert attachment.mime_type == "application/x-custom"

    def test_encoded_with_requested_format(self, store, report):
        """Width and newline are chosen when encoding, not when attaching."""
        attachment = store.attach_file(str(report))

        narrow = attachment.encode(40, "\n")
        assert "\r" not in narrow
        assert max(len(line) for line in narrow.split("\n")) == 40
        assert b64decode(narrow.replace("\n", "")) == report.read_bytes()

    def test_missing_file(self, store, tmp_path):
        with pytest.raises(AttachmentNotFound):
            store.attach_file(str(tmp_path / "nope.pdf"))
        assert len(store) == 0

    def test_empty_file(self, store, tmp_path):
        empty = tmp_path / "empty.txt"
        empty.write_bytes(b"")
        with pytest.raises(InvalidAttachment):
            store.attach_file(str(empty))
        assert len(store) == 0

    def test_reattach_same_id_is_noop(self, store, report):
        """The first entry stays, and the file is not read again."""
        first = store.attach_file(str(report), inline=True)
        report.unlink()

        second = store.attach_file(str(report), inline=True)

        assert second is first
        assert len(store.inline) == 1

    def test_inline_and_attachment_are_separate(self, store, report):
        store.attach_file(str(report), inline=True)
        store.attach_file(str(report))
        assert len(store.inline) == 1
        assert len(store.attachment) == 1
        assert len(store) == 2

    def test_clear(self, store, report):
        store.attach_file(str(report), inline=True)
        store.attach_file(str(report))
        store.clear()
        assert len(store) == 0


class TestAttachBytes:

    def test_bytes_round_trip(self, store):
        attachment = store.attach_bytes(b"col1,col2\n1,2\n", "data.csv", mime="text/csv")
        assert attachment.content == b"col1,col2\n1,2\n"
        assert b64decode(attachment.encode()) == b"col1,col2\n1,2\n"
        assert attachment.filename == "data.csv"
        assert attachment.content_id == content_id_for("data.csv")

    def test_mime_from_filename(self, store):
        assert store.attach_bytes(b"\x89PNG", "pic.png", inline=True).mime_type == "image/png"

    def test_empty_bytes(self, store):
        with pytest.raises(InvalidAttachment):
            store.attach_bytes(b"", "data.csv")

    def test_missing_filename(self, store):
        with pytest.raises(ValueError):
            store.attach_bytes(b"x", "")
