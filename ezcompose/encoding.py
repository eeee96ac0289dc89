"""Transfer encodings and line wrapping for message bodies.

Bodies are first encoded with :func:`encode_string` and then folded with
:func:`wrap_text`. In quoted-printable mode the wrapper only ever breaks a
line at a space (emitting a ``" ="`` soft break) or, for words longer than the
line, between escape triplets, keeping the bytes of one UTF-8 character on the
same line.

Example:
    encoded = encode_string("Olá mundo", "quoted-printable", "utf-8", "\\r\\n")
    body = wrap_text(encoded, 76, "utf-8", "\\r\\n", qp_mode=True)
"""

from base64 import b64encode
from re import compile as re_compile

from .errors import UnsupportedEncoding


ENCODINGS = ("quoted-printable", "base64", "7bit", "8bit")

MAX_LINE_LENGTH = 76

_ESCAPE = re_compile(r"=([0-9A-Fa-f]{2})")


def prep_newlines(text: str, newline: str = "\n") -> str:
    """Normalizes CRLF, CR and LF line endings to ``newline``."""
    return text.replace("\r\n", "\n").replace("\r", "\n").replace("\n", newline)


def chunk_base64(data: bytes, width: int = MAX_LINE_LENGTH, newline: str = "\r\n") -> str:
    """Base64-encodes ``data`` into lines of at most ``width`` characters."""
    encoded = b64encode(data).decode("ascii")
    return newline.join(encoded[i:i + width] for i in range(0, len(encoded), width))


def _qp_encode_line(data: bytes) -> str:
    last = len(data) - 1
    out = []
    for index, byte in enumerate(data):
        if (byte in (9, 32) and index != last) or (33 <= byte <= 126 and byte != 61):
            out.append(chr(byte))
        else:
            out.append(f"={byte:02X}")
    return "".join(out)


def quoted_printable(text: str, charset: str = "utf-8", newline: str = "\n") -> str:
    """Quoted-printable encodes ``text`` line by line (RFC 2045 §6.7).

    No soft line breaks are inserted here; line length is the job of
    :func:`wrap_text`.
    """
    lines = prep_newlines(text, "\n").split("\n")
    return newline.join(_qp_encode_line(line.encode(charset)) for line in lines)


def encode_string(text: str, encoding: str, charset: str = "utf-8", newline: str = "\n") -> str:
    """Encodes a body with the given content transfer encoding.

    Args:
        text (str): The body text.
        encoding (str): ``quoted-printable``, ``base64``, ``7bit`` or ``8bit``.
        charset (str): Charset used to turn the text into bytes.
        newline (str): Line separator of the result.

    Returns:
        str: The encoded body. ``7bit``/``8bit`` only normalize newlines and
        drop trailing ones; ``base64`` is chunked at 76 characters.

    Raises:
        UnsupportedEncoding: If ``encoding`` is not one of :data:`ENCODINGS`.
    """
    if encoding == "quoted-printable":
        return quoted_printable(text, charset, newline)
    if encoding in ("7bit", "8bit"):
        return prep_newlines(text, newline).rstrip("\r\n")
    if encoding == "base64":
        return chunk_base64(text.encode(charset), MAX_LINE_LENGTH, newline)
    raise UnsupportedEncoding(f"{encoding} is not a supported encoding method.")


def _escaped_byte(encoded: str, pos: int) -> int | None:
    match = _ESCAPE.match(encoded, pos)
    return int(match.group(1), 16) if match else None


def _is_continuation(value: int | None) -> bool:
    return value is not None and 0x80 <= value < 0xC0


def _escape_start(encoded: str, cut: int) -> int:
    """Position of an ``=XX`` escape that a cut at ``cut`` would split, or -1."""
    return encoded.rfind("=", max(cut - 2, 0), cut)


def _first_char_end(encoded: str, fallback: int) -> int:
    end = 0
    while _escaped_byte(encoded, end) is not None:
        if end and not _is_continuation(_escaped_byte(encoded, end)):
            break
        end += 3
    return end or fallback


def utf8_char_boundary(encoded: str, max_length: int) -> int:
    """Finds a cut position in quoted-printable UTF-8 text.

    Starting at ``max_length`` the cut moves back over any escape it would
    split and over every escaped continuation byte (0x80-0xBF), so that it
    lands right before an ASCII byte or a lead byte.

    Returns:
        int: A position ``<= max_length`` that does not split a character.
        If the first character alone is longer than ``max_length``, the end
        of that character.
    """
    cut = max_length
    while cut > 0:
        start = _escape_start(encoded, cut)
        if start != -1:
            cut = start
        elif _is_continuation(_escaped_byte(encoded, cut)):
            cut = encoded.rfind("=", 0, cut)
        else:
            return cut
    return _first_char_end(encoded, max_length)


def escape_boundary(encoded: str, max_length: int) -> int:
    """Cut position in quoted-printable text that keeps ``=XX`` triplets whole."""
    start = _escape_start(encoded, max_length)
    if start > 0:
        return start
    if start == 0:
        return min(3, len(encoded))
    return max_length


def split_word(word: str, width: int, qp_mode: bool = False, is_utf8: bool = False) -> list[str]:
    pieces = []
    while len(word) > width:
        cut = width
        if qp_mode:
            cut = utf8_char_boundary(word, width) if is_utf8 else escape_boundary(word, width)
        pieces.append(word[:cut])
        word = word[cut:]
    pieces.append(word)
    return pieces


def _wrap_line(line: str, width: int, newline: str, soft_break: str, qp_mode: bool, is_utf8: bool) -> list[str]:
    out = []
    buf, started = "", False

    for word in line.split(" "):
        if len(word) > width:
            # the separating space travels with the soft break
            if started:
                out.append(buf + soft_break)
            *pieces, word = split_word(word, width, qp_mode, is_utf8)
            hard_cut = "=" + newline if qp_mode else newline
            out.extend(piece + hard_cut for piece in pieces)
            buf, started = word, True
            continue

        candidate = f"{buf} {word}" if started else word
        if started and len(candidate) > width:
            out.append(buf + soft_break)
            buf = word
        else:
            buf = candidate
        started = True

    out.append(buf + newline)
    return out


def wrap_text(message: str, length: int, charset: str = "utf-8", newline: str = "\n", qp_mode: bool = False) -> str:
    """Word-wraps an (encoded) body.

    Args:
        message (str): The text to wrap, usually the output of
            :func:`encode_string`.
        length (int): Maximum line length; values above 76 are capped.
        charset (str): Body charset. For ``utf-8`` quoted-printable text,
            long words are never split inside a multi-byte character.
        newline (str): Line separator.
        qp_mode (bool): Whether ``message`` is quoted-printable. Lines are
            then broken with ``" ="`` soft breaks, which decoders remove, and
            the text on each line leaves room for the marker.

    Returns:
        str: The wrapped text, each line terminated by ``newline``.
    """
    length = min(length, MAX_LINE_LENGTH)
    marker = " =" if qp_mode else ""
    soft_break = marker + newline
    width = max(length - len(marker), 1)
    is_utf8 = charset.lower().replace("_", "-") in ("utf-8", "utf8")

    message = prep_newlines(message, newline).rstrip("\r\n")

    out = []
    for line in message.split(newline):
        out.extend(_wrap_line(line, width, newline, soft_break, qp_mode, is_utf8))
    return "".join(out)
