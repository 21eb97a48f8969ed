"""
Unified diff parser.

Turns the byte stream of ``git diff`` into an ordered list of Hunk models.
File headers and fragments are kept byte-for-byte, so that a hunk can be
re-emitted as a standalone patch whose patch-id matches the original.

Sections without any ``@@`` fragment (pure renames, mode changes, empty new
files) and binary sections yield one synthetic whole-file hunk.
"""

import logging
import re

from git_sequential_stage.core.errors import parsing_error
from git_sequential_stage.models.hunk import FileOperation, Hunk
from git_sequential_stage.utils.paths import (
    DEV_NULL,
    decode_path,
    is_quoted,
    split_quoted_token,
    strip_prefix,
    unquote_git_path,
)

logger = logging.getLogger(__name__)

DIFF_GIT_PREFIX = b"diff --git "
HUNK_HEADER_RE = re.compile(rb"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")

# Lines that only make sense inside a file section.
_STRUCTURAL_PREFIXES = (
    b"@@ -",
    b"--- ",
    b"+++ ",
    b"old mode ",
    b"new mode ",
    b"new file mode ",
    b"deleted file mode ",
    b"rename from ",
    b"rename to ",
    b"copy from ",
    b"copy to ",
    b"similarity index ",
    b"dissimilarity index ",
)


def split_lines(data: bytes) -> list[bytes]:
    """Split on LF, keeping terminators; a final unterminated line is kept as is."""
    parts = data.split(b"\n")
    lines = [part + b"\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


class _Section:
    """Accumulates one ``diff --git`` block while it is being read."""

    def __init__(self, diff_line: bytes, lineno: int):
        self.lineno = lineno
        self.lines = [diff_line]
        self.header_lines = [diff_line]
        self.fragments: list[list[bytes]] = []
        self.is_new = False
        self.is_deleted = False
        self.is_binary = False
        self.rename_from: bytes | None = None
        self.rename_to: bytes | None = None
        self.copy_from: bytes | None = None
        self.copy_to: bytes | None = None
        self.minus_path: bytes | None = None
        self.plus_path: bytes | None = None

    def add_header(self, line: bytes) -> None:
        self.lines.append(line)
        self.header_lines.append(line)
        text = line.rstrip(b"\n").rstrip(b"\r")

        if text.startswith(b"new file mode "):
            self.is_new = True
        elif text.startswith(b"deleted file mode "):
            self.is_deleted = True
        elif text.startswith(b"rename from "):
            self.rename_from = _header_path(text[len(b"rename from "):])
        elif text.startswith(b"rename to "):
            self.rename_to = _header_path(text[len(b"rename to "):])
        elif text.startswith(b"copy from "):
            self.copy_from = _header_path(text[len(b"copy from "):])
        elif text.startswith(b"copy to "):
            self.copy_to = _header_path(text[len(b"copy to "):])
        elif text.startswith(b"--- "):
            self.minus_path = _marker_path(text[4:], b"a/")
        elif text.startswith(b"+++ "):
            self.plus_path = _marker_path(text[4:], b"b/")
        elif text == b"GIT binary patch" or (
            text.startswith(b"Binary files ") and text.endswith(b" differ")
        ):
            self.is_binary = True

    @property
    def operation(self) -> FileOperation:
        if self.is_binary:
            return FileOperation.BINARY_DELTA
        if self.is_new:
            return FileOperation.ADDED
        if self.is_deleted:
            return FileOperation.DELETED
        if self.rename_from is not None or self.rename_to is not None:
            return FileOperation.RENAMED
        if self.copy_from is not None or self.copy_to is not None:
            return FileOperation.COPIED
        return FileOperation.MODIFIED

    def resolve_paths(self) -> tuple[str | None, str]:
        """Return (old_path, path) for the hunks of this section."""
        git_old, git_new = _split_diff_git_line(self.header_lines[0])

        old = self.rename_from or self.copy_from
        if old is None:
            old = self.minus_path if self.minus_path not in (None, DEV_NULL) else git_old
        new = self.rename_to or self.copy_to
        if new is None:
            new = self.plus_path if self.plus_path not in (None, DEV_NULL) else git_new

        if old is None and new is None:
            raise parsing_error(
                "diff", f"line {self.lineno}: cannot determine the file name of this section"
            )

        if self.is_deleted:
            return None, decode_path(old or new)
        path = decode_path(new or old)
        moved = any(
            value is not None
            for value in (self.rename_from, self.rename_to, self.copy_from, self.copy_to)
        )
        if moved and old is not None and old != new:
            return decode_path(old), path
        return None, path


def _header_path(raw: bytes) -> bytes:
    try:
        return unquote_git_path(raw)
    except ValueError as e:
        raise parsing_error("diff", str(e), e)


def _marker_path(raw: bytes, prefix: bytes) -> bytes:
    """Path of a ``---``/``+++`` line; git may append a tab after unusual names."""
    if not is_quoted(raw) and b"\t" in raw:
        raw = raw.split(b"\t", 1)[0]
    if raw == DEV_NULL:
        return DEV_NULL
    return strip_prefix(_header_path(raw), prefix)


def _split_diff_git_line(line: bytes) -> tuple[bytes | None, bytes | None]:
    """
    Extract both paths of ``diff --git a/X b/Y``.

    Unquoted names may contain spaces, so the split point is ambiguous; the
    symmetric split (X == Y) is preferred, as git only writes this line
    unambiguously when both names are equal.
    """
    rest = line[len(DIFF_GIT_PREFIX):].rstrip(b"\n").rstrip(b"\r")
    try:
        if rest.startswith(b'"'):
            first, remainder = split_quoted_token(rest)
            second = remainder.lstrip(b" ")
            return (
                strip_prefix(unquote_git_path(first), b"a/"),
                strip_prefix(unquote_git_path(second), b"b/"),
            )
        if rest.endswith(b'"') and b' "' in rest:
            first, _, second = rest.rpartition(b' "')
            return strip_prefix(first, b"a/"), strip_prefix(unquote_git_path(b'"' + second), b"b/")
    except ValueError as e:
        raise parsing_error("diff", str(e), e)

    candidates = [m.start() for m in re.finditer(rb" b/", rest)]
    for pos in candidates:
        old, new = rest[:pos], rest[pos + 1:]
        if strip_prefix(old, b"a/") == strip_prefix(new, b"b/"):
            return strip_prefix(old, b"a/"), strip_prefix(new, b"b/")
    if candidates:
        pos = candidates[0]
        return strip_prefix(rest[:pos], b"a/"), strip_prefix(rest[pos + 1:], b"b/")
    old, _, new = rest.partition(b" ")
    return (old or None), (new or None)


def parse_patch(data: bytes, source: str = "patch") -> list[Hunk]:
    """
    Parse a unified diff into hunks.

    Text before the first ``diff --git`` line (a mail header, a commit
    message) is skipped, as is trailing text after a section's last
    complete fragment.

    Args:
        data: Raw diff bytes.
        source: Name of the input, used in error messages.

    Returns:
        Hunks in diff order; an empty list for blank input.

    Raises:
        StagerError: (Parsing) for malformed input.
    """
    if not data.strip():
        return []

    sections: list[_Section] = []
    section: _Section | None = None
    fragment: list[bytes] | None = None
    old_left = new_left = 0

    for lineno, line in enumerate(split_lines(data), start=1):
        if line.startswith(DIFF_GIT_PREFIX):
            if old_left > 0 or new_left > 0:
                raise parsing_error(source, f"line {lineno}: previous hunk is truncated")
            section = _Section(line, lineno)
            sections.append(section)
            fragment = None
            continue

        if section is None:
            if line.startswith(_STRUCTURAL_PREFIXES):
                raise parsing_error(
                    source, f"line {lineno}: diff header without a preceding 'diff --git' line"
                )
            continue

        if section.is_binary:
            # Everything up to the next section is binary payload.
            section.lines.append(line)
            section.header_lines.append(line)
            continue

        if fragment is not None and (old_left > 0 or new_left > 0 or line.startswith(b"\\")):
            tag = line[:1]
            if tag == b"\\":
                pass
            elif tag == b" " or line in (b"\n", b"\r\n"):
                old_left -= 1
                new_left -= 1
            elif tag == b"-":
                old_left -= 1
            elif tag == b"+":
                new_left -= 1
            else:
                raise parsing_error(source, f"line {lineno}: unexpected line inside hunk")
            if old_left < 0 or new_left < 0:
                raise parsing_error(source, f"line {lineno}: hunk is longer than its header says")
            fragment.append(line)
            section.lines.append(line)
            continue

        if line.startswith(b"@@"):
            match = HUNK_HEADER_RE.match(line)
            if match is None:
                raise parsing_error(source, f"line {lineno}: malformed hunk header")
            old_left = int(match.group(2)) if match.group(2) is not None else 1
            new_left = int(match.group(4)) if match.group(4) is not None else 1
            fragment = [line]
            section.fragments.append(fragment)
            section.lines.append(line)
            continue

        if section.fragments:
            if line.startswith(_STRUCTURAL_PREFIXES):
                raise parsing_error(
                    source, f"line {lineno}: diff header without a preceding 'diff --git' line"
                )
            logger.debug("Ignoring trailing line %d after the last hunk of a section", lineno)
            continue

        section.add_header(line)

    if old_left > 0 or new_left > 0:
        raise parsing_error(source, "last hunk is truncated")
    if not sections:
        raise parsing_error(source, "no 'diff --git' sections found")

    return _build_hunks(sections)


def _build_hunks(sections: list[_Section]) -> list[Hunk]:
    hunks: list[Hunk] = []
    for section in sections:
        old_path, path = section.resolve_paths()
        section_bytes = b"".join(section.lines)
        common = dict(
            path=path,
            old_path=old_path,
            operation=section.operation,
            is_binary=section.is_binary,
            header_lines=list(section.header_lines),
            section=section_bytes,
        )
        if section.is_binary or not section.fragments:
            hunks.append(Hunk(global_index=len(hunks) + 1, index_in_file=1, **common))
            continue
        for number, fragment in enumerate(section.fragments, start=1):
            hunks.append(
                Hunk(
                    global_index=len(hunks) + 1,
                    index_in_file=number,
                    fragment=b"".join(fragment),
                    **common,
                )
            )
    return hunks
