"""
Single-hunk patch synthesis.

Builds the smallest patch that ``git apply --cached`` accepts for one hunk:
the file header lines that matter for the hunk's operation, followed by the
fragment exactly as it appeared in the source diff.
"""

import re

from git_sequential_stage.models.hunk import FileOperation, Hunk
from git_sequential_stage.utils.paths import encode_path

INDEX_LINE_RE = re.compile(rb"^index [0-9a-f]+\.\.[0-9a-f]+(?: [0-7]+)?\r?$")

_MODE_PREFIXES = (b"old mode ", b"new mode ")
_OPERATION_PREFIXES = {
    FileOperation.ADDED: (b"new file mode ",),
    FileOperation.DELETED: (b"deleted file mode ",),
    FileOperation.RENAMED: (b"similarity index ", b"rename from ", b"rename to "),
    FileOperation.COPIED: (b"similarity index ", b"copy from ", b"copy to "),
}


def synthesize(hunk: Hunk) -> bytes:
    """
    Return a standalone patch for ``hunk``, always newline-terminated.

    New files, binary sections and sections without fragments can only be
    applied whole, so their complete section is returned verbatim.
    """
    if hunk.is_whole_file:
        return _terminated(hunk.section)

    wanted = _MODE_PREFIXES + _OPERATION_PREFIXES.get(hunk.operation, ())
    out = [hunk.header_lines[0]]
    minus = plus = None
    for line in hunk.header_lines[1:]:
        if line.startswith(wanted):
            out.append(line)
        elif line.startswith(b"index ") and INDEX_LINE_RE.match(line.rstrip(b"\n")):
            out.append(line)
        elif line.startswith(b"--- "):
            minus = line
        elif line.startswith(b"+++ "):
            plus = line

    out.append(minus or _marker_line(b"---", b"a/", hunk.old_path or hunk.path))
    out.append(plus or _marker_line(b"+++", b"b/", hunk.path))
    out.append(hunk.fragment)
    return _terminated(b"".join(out))


def synthesize_edit(hunk: Hunk) -> bytes:
    """
    Return ``hunk`` as a plain edit of its new path.

    Used for the later hunks of a renamed file once the rename itself is in
    the index: the old path is gone by then, so the rename headers would
    make ``git apply`` look for a file that no longer exists.
    """
    if hunk.is_whole_file:
        return synthesize(hunk)

    new_side = _new_side(hunk)
    if new_side.startswith(b'"b/'):
        old_side = b'"a/' + new_side[3:]
    else:
        old_side = b"a/" + new_side[2:]

    out = [
        b"diff --git " + old_side + b" " + new_side + b"\n",
        b"--- " + old_side + b"\n",
        b"+++ " + new_side + b"\n",
        hunk.fragment,
    ]
    return _terminated(b"".join(out))


def _new_side(hunk: Hunk) -> bytes:
    for line in hunk.header_lines[1:]:
        if line.startswith(b"+++ b/") or line.startswith(b'+++ "b/'):
            return line[4:].rstrip(b"\r\n").split(b"\t", 1)[0]
    return b"b/" + encode_path(hunk.path)


def _marker_line(marker: bytes, prefix: bytes, path: str) -> bytes:
    return marker + b" " + prefix + encode_path(path) + b"\n"


def _terminated(data: bytes) -> bytes:
    if data and not data.endswith(b"\n"):
        return data + b"\n"
    return data
