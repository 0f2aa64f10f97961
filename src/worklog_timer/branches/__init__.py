"""Branch-aware work item selection."""

from .directory import (
    DETACHED_BRANCH,
    BranchIssueDirectory,
    ReportedBranches,
    SourceControl,
    branch_name_or_revision,
)
from .parser import BranchKeys, extract_primary_key, parse_branch_name

__all__ = [
    "BranchIssueDirectory",
    "BranchKeys",
    "DETACHED_BRANCH",
    "ReportedBranches",
    "SourceControl",
    "branch_name_or_revision",
    "extract_primary_key",
    "parse_branch_name",
]
