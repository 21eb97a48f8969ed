"""
Hunk and target models.

A Hunk is one change fragment of a unified diff together with the file
header it belongs to, kept byte-for-byte. A Target is a hunk the user asked
for, reduced to the identity used to find it again in a later diff.
"""

from enum import Enum

from pydantic import BaseModel, Field

# Prefixes of the placeholder IDs given to hunks git cannot hash.
BINARY_ID_PREFIX = "binary-"
UNKNOWN_ID_PREFIX = "unknown-"


class FileOperation(str, Enum):
    """What a file section of a diff does to its file."""

    MODIFIED = "Modified"
    ADDED = "Added"
    DELETED = "Deleted"
    RENAMED = "Renamed"
    COPIED = "Copied"
    BINARY_DELTA = "BinaryDelta"


def is_surrogate_id(patch_id: str) -> bool:
    """True for placeholder IDs that do not describe hunk content."""
    return patch_id.startswith((BINARY_ID_PREFIX, UNKNOWN_ID_PREFIX))


def match_key(patch_id: str, path: str, old_path: str | None) -> tuple[str, str, str]:
    """
    Identity used to pair a target with a hunk of a later diff.

    Content IDs match on their own. Placeholder IDs embed a position that
    changes between diffs, so they match on kind plus file paths instead.
    """
    if is_surrogate_id(patch_id):
        kind = patch_id.split("-", 1)[0]
        return (kind, path, old_path or "")
    return ("patch-id", patch_id, "")


class Hunk(BaseModel):
    """One selectable unit of a parsed diff."""

    global_index: int = Field(..., ge=1, description="1-based position across the whole diff")
    path: str = Field(..., description="File path (new side; old side for deletions)")
    old_path: str | None = Field(None, description="Source path of a rename or copy")
    operation: FileOperation = Field(FileOperation.MODIFIED)
    is_binary: bool = Field(False)
    index_in_file: int = Field(..., ge=1, description="1-based position within its file")

    header_lines: list[bytes] = Field(
        default_factory=list, description="File header lines, verbatim, diff --git first"
    )
    fragment: bytes = Field(b"", description="@@ header plus body; empty for synthetic hunks")
    section: bytes = Field(b"", description="The whole file section, verbatim")

    patch_id: str | None = Field(None, description="Content identity, computed lazily")

    @property
    def is_synthetic(self) -> bool:
        """A whole-file hunk standing in for a section without fragments."""
        return not self.fragment

    @property
    def is_whole_file(self) -> bool:
        """True when the hunk can only be applied as its complete file section."""
        return self.is_binary or self.is_synthetic or self.operation is FileOperation.ADDED

    @property
    def is_rename(self) -> bool:
        return self.old_path is not None and self.operation is not FileOperation.COPIED

    @property
    def paths(self) -> list[str]:
        """Every path the hunk touches, new side first."""
        if self.old_path and self.old_path != self.path:
            return [self.path, self.old_path]
        return [self.path]

    @property
    def fragment_header(self) -> str:
        if self.is_synthetic:
            return ""
        return self.fragment.split(b"\n", 1)[0].decode("utf-8", errors="replace")

    @property
    def selector(self) -> str:
        return f"{self.path}:{self.index_in_file}"

    @property
    def match_key(self) -> tuple[str, str, str]:
        if self.patch_id is None:
            raise ValueError(f"patch ID of {self.selector} has not been computed")
        return match_key(self.patch_id, self.path, self.old_path)


class HunkSelector(BaseModel):
    """A parsed ``PATH:N[,N...]`` argument."""

    path: str = Field(..., min_length=1)
    numbers: list[int] = Field(..., min_length=1)

    def __str__(self) -> str:
        return f"{self.path}:{','.join(str(n) for n in self.numbers)}"


class Target(BaseModel):
    """A hunk still waiting to be staged, identified by its patch ID."""

    patch_id: str
    path: str
    old_path: str | None = None
    selector: str = Field("", description="The PATH:N the target was resolved from")

    @property
    def key(self) -> tuple[str, str, str]:
        return match_key(self.patch_id, self.path, self.old_path)

    @classmethod
    def from_hunk(cls, hunk: Hunk) -> "Target":
        if hunk.patch_id is None:
            raise ValueError(f"patch ID of {hunk.selector} has not been computed")
        return cls(
            patch_id=hunk.patch_id,
            path=hunk.path,
            old_path=hunk.old_path,
            selector=hunk.selector,
        )
