"""Groups the files named by a patch by what the patch does to them."""

from git_sequential_stage.core.patch_parser import parse_patch
from git_sequential_stage.models.hunk import FileOperation, Hunk
from git_sequential_stage.models.safety import FileStatus, PatchAnalysisResult

_OPERATION_STATUS = {
    FileOperation.MODIFIED: FileStatus.MODIFIED,
    FileOperation.ADDED: FileStatus.ADDED,
    FileOperation.DELETED: FileStatus.DELETED,
    FileOperation.RENAMED: FileStatus.RENAMED,
    FileOperation.COPIED: FileStatus.COPIED,
    FileOperation.BINARY_DELTA: FileStatus.BINARY,
}


class PatchAnalyzer:
    def analyze(self, patch: bytes) -> PatchAnalysisResult:
        """
        Classify every file section of ``patch``.

        A new file without any fragment is an intent-to-add candidate: that
        is how ``git diff`` renders a file registered with ``git add -N``
        and still empty.
        """
        result = PatchAnalysisResult()
        for hunk in parse_patch(patch):
            if hunk.index_in_file != 1:
                continue
            result.all_files.append(hunk.path)
            status = _OPERATION_STATUS[hunk.operation]
            result.files_by_status.setdefault(status, []).append(_describe(hunk))
            if _is_intent_to_add(hunk):
                result.intent_to_add_files.append(hunk.path)
        return result


def _describe(hunk: Hunk) -> str:
    if hunk.old_path and hunk.operation in (FileOperation.RENAMED, FileOperation.COPIED):
        return f"{hunk.old_path} -> {hunk.path}"
    return hunk.path


def _is_intent_to_add(hunk: Hunk) -> bool:
    return hunk.operation is FileOperation.ADDED and hunk.is_synthetic and not hunk.is_binary
