"""
Path helpers for git output.

Git C-quotes paths containing special bytes (``"t\\303\\251st.txt"``).
Paths are handled as bytes until the last moment and decoded with
surrogateescape so that undecodable names survive a round-trip.
"""

import re

_SIMPLE_ESCAPES = {
    ord("a"): 0x07,
    ord("b"): 0x08,
    ord("t"): 0x09,
    ord("n"): 0x0A,
    ord("v"): 0x0B,
    ord("f"): 0x0C,
    ord("r"): 0x0D,
    ord('"'): 0x22,
    ord("\\"): 0x5C,
}
_OCTAL_RE = re.compile(rb"[0-3][0-7]{2}")

DEV_NULL = b"/dev/null"


def is_quoted(raw: bytes) -> bool:
    return len(raw) >= 2 and raw.startswith(b'"') and raw.endswith(b'"')


def unquote_git_path(raw: bytes) -> bytes:
    """Undo git's C-style quoting; unquoted input is returned unchanged."""
    if not is_quoted(raw):
        return raw
    body = raw[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        byte = body[i]
        if byte != 0x5C:
            out.append(byte)
            i += 1
            continue
        escape = body[i + 1:i + 2]
        if not escape:
            raise ValueError(f"dangling backslash in quoted path {raw!r}")
        if _OCTAL_RE.match(body, i + 1):
            out.append(int(body[i + 1:i + 4], 8))
            i += 4
        elif escape[0] in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[escape[0]])
            i += 2
        else:
            raise ValueError(f"unknown escape \\{escape.decode('latin-1')} in {raw!r}")
    return bytes(out)


def decode_path(raw: bytes) -> str:
    return raw.decode("utf-8", errors="surrogateescape")


def encode_path(path: str) -> bytes:
    return path.encode("utf-8", errors="surrogateescape")


def strip_prefix(raw: bytes, prefix: bytes) -> bytes:
    """Drop the ``a/`` or ``b/`` prefix git puts in front of diff paths."""
    if raw.startswith(prefix):
        return raw[len(prefix):]
    return raw


def split_quoted_token(raw: bytes) -> tuple[bytes, bytes]:
    """
    Split a leading C-quoted token off ``raw``.

    Returns the token (quotes included) and the rest of the input.
    """
    i = 1
    while i < len(raw):
        if raw[i] == 0x5C:
            i += 2
            continue
        if raw[i] == 0x22:
            return raw[:i + 1], raw[i + 1:]
        i += 1
    raise ValueError(f"unterminated quoted path in {raw!r}")


def split_rename(raw: bytes) -> tuple[bytes, bytes]:
    """Split the ``old -> new`` form used by ``git status`` for renames and copies."""
    if raw.startswith(b'"'):
        old, rest = split_quoted_token(raw)
        if not rest.startswith(b" -> "):
            raise ValueError(f"malformed rename entry {raw!r}")
        return unquote_git_path(old), unquote_git_path(rest[4:])
    old, sep, new = raw.partition(b" -> ")
    if not sep:
        raise ValueError(f"malformed rename entry {raw!r}")
    return old, unquote_git_path(new)
