"""Extract tracker keys from source-control branch names.

``PARENT-123/SUBTASK-456-feature`` yields subtask ``SUBTASK-456`` and parent
``PARENT-123``; ``PARENT-123-feature`` yields the parent only.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

ISSUE_KEY_PATTERN = re.compile(r"[A-Z][A-Z0-9_]+-\d+")


@dataclass(frozen=True, slots=True)
class BranchKeys:
    subtask_key: str | None = None
    parent_key: str | None = None

    @property
    def primary_key(self) -> str | None:
        return self.subtask_key or self.parent_key

    @property
    def has_any_key(self) -> bool:
        return self.subtask_key is not None or self.parent_key is not None


def parse_branch_name(branch_name: str | None) -> BranchKeys:
    if not branch_name or not branch_name.strip():
        return BranchKeys()

    matches = ISSUE_KEY_PATTERN.findall(branch_name)
    if not matches:
        return BranchKeys()
    if len(matches) == 1:
        return BranchKeys(parent_key=matches[0])
    return BranchKeys(subtask_key=matches[1], parent_key=matches[0])


def extract_primary_key(branch_name: str | None) -> str | None:
    return parse_branch_name(branch_name).primary_key


__all__ = ["BranchKeys", "ISSUE_KEY_PATTERN", "extract_primary_key", "parse_branch_name"]
