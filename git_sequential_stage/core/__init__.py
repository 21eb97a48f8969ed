"""Core staging engine for git-sequential-stage."""

from git_sequential_stage.core.config import StagerSettings
from git_sequential_stage.core.count_hunks import count_hunks, count_hunks_in_diff
from git_sequential_stage.core.errors import ErrorKind, SafetyError, StagerError
from git_sequential_stage.core.patch_analyzer import PatchAnalyzer
from git_sequential_stage.core.patch_id import assign_patch_id, compute_patch_id
from git_sequential_stage.core.patch_parser import parse_patch
from git_sequential_stage.core.runner import GitRunner
from git_sequential_stage.core.safety import SafetyChecker
from git_sequential_stage.core.selectors import parse_selector, resolve_selectors
from git_sequential_stage.core.stager import SequentialStager, stage_hunks
from git_sequential_stage.core.status_reader import GitStatusReader
from git_sequential_stage.core.synthesizer import synthesize
from git_sequential_stage.core.validator import Validator

__all__ = [
    "ErrorKind",
    "GitRunner",
    "GitStatusReader",
    "PatchAnalyzer",
    "SafetyChecker",
    "SafetyError",
    "SequentialStager",
    "StagerError",
    "StagerSettings",
    "Validator",
    "assign_patch_id",
    "compute_patch_id",
    "count_hunks",
    "count_hunks_in_diff",
    "parse_patch",
    "parse_selector",
    "resolve_selectors",
    "stage_hunks",
    "synthesize",
]
