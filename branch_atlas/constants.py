"""Shared constants for branch-atlas."""

import re
from typing import List, Pattern, Tuple

from branch_atlas.models.tech_tree import BranchType, SizeTier


# Record layout for every git format string the parsers read
FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"


# Size tiers by total changed lines: upper bound (exclusive) per tier, in order.
# The last tier is open-ended.
SIZE_TIER_THRESHOLDS: List[Tuple[SizeTier, int]] = [
    (SizeTier.XS, 20),
    (SizeTier.SM, 100),
    (SizeTier.MD, 500),
    (SizeTier.LG, 2000),
]
SIZE_TIER_MAX = SizeTier.XL

XL_LINES_THRESHOLD = 2000
SM_LINES_THRESHOLD = 100  # upper bound of the sm tier

# Badge thresholds
DESTRUCTIVE_RATIO = 2  # removed > added * ratio
ADDITIVE_RATIO = 5  # added > removed * ratio
MULTI_FILE_THRESHOLD = 10  # files changed > threshold
SURGICAL_MAX_FILES = 2
ANCIENT_DAYS = 180
FRESH_DAYS = 2


# Branch type rules, checked in order; first match wins
BRANCH_TYPE_RULES: List[Tuple[Tuple[str, ...], BranchType]] = [
    (("feature/", "feat/"), BranchType.FEATURE),
    (("fix/", "bugfix/", "hotfix/"), BranchType.FIX),
    (("chore/",), BranchType.CHORE),
    (("refactor/",), BranchType.REFACTOR),
    (("docs/", "doc/"), BranchType.DOCS),
    (("test/", "tests/"), BranchType.TEST),
    (("release/",), BranchType.RELEASE),
]


# Merge message shapes that name the merged branch, checked in order.
# Each pattern captures the branch name in group "branch".
MERGE_MESSAGE_PATTERNS: List[Pattern[str]] = [
    re.compile(r"^Merge pull request #\d+ from [^/:\s]+/(?P<branch>\S+)"),
    re.compile(r"^Merge pull request #\d+ from [^:\s]+:(?P<branch>\S+)"),
    re.compile(r"^Merge remote-tracking branch '(?:[^/']+/)?(?P<branch>[^']+)'"),
    re.compile(r"^Merge branch '(?P<branch>[^']+)'"),
    re.compile(r"^Merged in (?P<branch>\S+) \(pull request #\d+\)"),
    re.compile(r"^Merge (?P<branch>\S+) into \S+"),
]
PR_NUMBER_PATTERN = re.compile(r"(?:pull request |\(|\s)#(?P<number>\d+)")

