import re
from typing import Dict, Iterable, List, Mapping

import structlog

from models import ChangedFile, FileStatus

logger = structlog.get_logger(__name__)

DEFAULT_SIZE_THRESHOLD = 500

# pattern -> reason the file is not worth a review
DEFAULT_EXCLUSIONS: Dict[str, str] = {
    r"(^|/)node_modules/": "vendored dependency directory",
    r"(^|/)vendor/": "vendored dependency directory",
    r"\.lock$": "dependency lock file",
    r"(^|/)package-lock\.json$": "dependency lock file",
    r"(^|/)yarn\.lock$": "dependency lock file",
    r"(^|/)pnpm-lock\.yaml$": "dependency lock file",
    r"\.min\.js$": "minified asset",
    r"\.min\.css$": "minified asset",
    r"\.bundle\.js$": "bundled asset",
    r"(^|/)dist/": "build output",
    r"(^|/)build/": "build output",
    r"\.generated\.": "generated file",
    r"\.auto\.": "auto-generated file",
}


def exclusion_reason(filename: str, patterns: Mapping[str, str] = DEFAULT_EXCLUSIONS):
    """Return the reason the filename is excluded, or None when it may be reviewed."""
    for pattern, reason in patterns.items():
        if re.search(pattern, filename):
            return reason
    return None


def filter_reviewable(
    files: Iterable[ChangedFile],
    patterns: Mapping[str, str] = DEFAULT_EXCLUSIONS,
    size_threshold: int = DEFAULT_SIZE_THRESHOLD,
) -> List[ChangedFile]:
    """
    Keep the files worth sending for review, in their original order.

    A file is dropped when it was deleted, when its name matches an
    exclusion pattern, or when its diff is larger than size_threshold.
    """
    kept = []
    for f in files:
        if f.status == FileStatus.removed:
            logger.debug("Skipping removed file", filename=f.filename)
            continue

        reason = exclusion_reason(f.filename, patterns)
        if reason is not None:
            logger.info("Skipping file due to exclude pattern", filename=f.filename, reason=reason)
            continue

        if f.changes > size_threshold:
            logger.info("Skipping large file", filename=f.filename, changes=f.changes)
            continue

        kept.append(f)
    return kept


def sum_changes(files: Iterable[ChangedFile]) -> int:
    return sum(f.additions + f.deletions for f in files)
