from dataclasses import dataclass
from hashlib import md5
from mimetypes import MimeTypes
from os.path import basename, splitext
from types import MappingProxyType
from typing import Iterator, Mapping

from loguru import logger

from .encoding import MAX_LINE_LENGTH, chunk_base64
from .errors import InvalidAttachment
from .utils import validate_path


DEFAULT_MIME_TYPE = "application/octet-stream"


class MimeTable:
    """Read-only mapping from lower-case file extension to MIME type.

    The table is filled once in the constructor and never changes afterwards,
    so one instance can be shared by any number of drafts and threads.

    Example:
        table = MimeTable({"png": "image/png"})
        table.lookup("logo.PNG")   # "image/png"
        table.lookup("data.xyz")   # "application/octet-stream"
    """

    def __init__(self, types: Mapping[str, str]):
        self._types = MappingProxyType({ext.lower().lstrip("."): mime for ext, mime in types.items()})

    @classmethod
    def from_system(cls) -> "MimeTable":
        """Builds a table from the platform's ``mimetypes`` database."""
        return cls(MimeTypes().types_map[1])

    def lookup(self, filename: str) -> str:
        ext = splitext(filename)[1].lower().lstrip(".")
        return self._types.get(ext, DEFAULT_MIME_TYPE)

    def __len__(self) -> int:
        return len(self._types)


DEFAULT_MIME_TABLE = MimeTable.from_system()


def content_id_for(filename: str) -> str:
    """Default Content-ID of a file: ``cid:`` plus the md5 of its basename."""
    return "cid:" + md5(basename(filename).encode("utf-8")).hexdigest()


def normalize_content_id(cid: str | None, filename: str) -> str:
    """Returns the ``cid:``-prefixed id, deriving it from ``filename`` if ``cid`` is empty."""
    if not cid:
        return content_id_for(filename)
    if cid.lower().startswith("cid:"):
        cid = cid[4:]
    return "cid:" + cid.strip("<>")


def read_file(path: str) -> bytes:
    """Reads an attachment from disk.

    Raises:
        AttachmentNotFound: If the file does not exist.
        InvalidAttachment: If the file cannot be read or is empty.
    """
    validate_path(path)
    try:
        with open(path, "rb") as f:
            contents = f.read()
    except OSError as e:
        raise InvalidAttachment(f"Could not read attachment: {path}") from e
    if not contents:
        raise InvalidAttachment(f"Attachment is empty: {path}")
    return contents


@dataclass(frozen=True)
class Attachment:
    filename: str
    mime_type: str
    disposition: str
    content_id: str
    content: bytes

    @property
    def inline(self) -> bool:
        return self.disposition == "inline"

    @property
    def header_content_id(self) -> str:
        """The Content-ID header value, e.g. ``<3f2a...>``."""
        return f"<{self.content_id[4:]}>"

    def encode(self, width: int = MAX_LINE_LENGTH, newline: str = "\r\n") -> str:
        """Base64 body of the part, in lines of at most ``width`` characters."""
        return chunk_base64(self.content, width, newline)

    def __repr__(self) -> str:
        return (
            f"Attachment("
            f"filename={self.filename!r}, "
            f"mime_type={self.mime_type!r}, "
            f"disposition={self.disposition!r}, "
            f"content_id={self.content_id!r})"
        )


class AttachmentStore:
    """Inline and regular attachments of a draft.

    Both collections are keyed by ``cid:<id>`` and keep insertion order.
    Attaching under a key that is already taken does nothing, without
    touching the file system.
    Contents are kept as raw bytes and base64-encoded when a message is
    built, with that message's newline and line width.
    """

    def __init__(self, mime_table: MimeTable = DEFAULT_MIME_TABLE):
        self.mime_table = mime_table
        self.inline: dict[str, Attachment] = {}
        self.attachment: dict[str, Attachment] = {}

    def _collection(self, inline: bool) -> dict[str, Attachment]:
        return self.inline if inline else self.attachment

    def has(self, cid: str, inline: bool = True) -> bool:
        """Whether an attachment is stored under ``cid`` (with or without ``cid:``)."""
        return normalize_content_id(cid, "") in self._collection(inline)

    def attach_file(self, path: str, inline: bool = False, cid: str | None = None, mime: str | None = None, filename: str | None = None) -> Attachment:
        """Reads, encodes and stores a file.

        Args:
            path (str): Path of the file to attach.
            inline (bool): Store as an inline part referenced by Content-ID.
            cid (str, optional): Content-ID to use; ``cid:`` prefix optional.
                Defaults to the md5 of the file name.
            mime (str, optional): MIME type; looked up by extension if omitted.
            filename (str, optional): Name shown to the recipient. Defaults to
                the basename of ``path``.

        Returns:
            Attachment: The stored attachment, or the one already present
            under the same Content-ID.

        Raises:
            AttachmentNotFound: If ``path`` does not exist.
            InvalidAttachment: If the file is unreadable or empty.
        """
        filename = filename or basename(path)
        key = normalize_content_id(cid, filename)
        collection = self._collection(inline)
        if key in collection:
            logger.debug(f"Attachment {key} already present, skipping {path}")
            return collection[key]

        return self._store(read_file(path), filename, inline, key, mime)

    def attach_bytes(self, contents: bytes, filename: str, inline: bool = False, cid: str | None = None, mime: str | None = None) -> Attachment:
        """Stores in-memory content as an attachment named ``filename``.

        Raises:
            InvalidAttachment: If ``contents`` is empty or not bytes.
            ValueError: If ``filename`` is empty.
        """
        if not filename:
            raise ValueError("Attachment filename must be a non-empty string.")
        if not isinstance(contents, (bytes, bytearray)) or not contents:
            raise InvalidAttachment(f"Attachment content is empty: {filename}")

        key = normalize_content_id(cid, filename)
        collection = self._collection(inline)
        if key in collection:
            logger.debug(f"Attachment {key} already present, skipping {filename}")
            return collection[key]

        return self._store(bytes(contents), filename, inline, key, mime)

    def _store(self, contents: bytes, filename: str, inline: bool, key: str, mime: str | None) -> Attachment:
        attachment = Attachment(
            filename=filename,
            mime_type=mime or self.mime_table.lookup(filename),
            disposition="inline" if inline else "attachment",
            content_id=key,
            content=contents,
        )
        self._collection(inline)[key] = attachment
        logger.debug(f"Attached {attachment.disposition} {filename} as {key} ({attachment.mime_type})")
        return attachment

    def clear(self) -> None:
        self.inline.clear()
        self.attachment.clear()

    def __iter__(self) -> Iterator[Attachment]:
        yield from self.inline.values()
        yield from self.attachment.values()

    def __len__(self) -> int:
        return len(self.inline) + len(self.attachment)
