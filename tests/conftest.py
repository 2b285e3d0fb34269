"""Shared fixtures for review bot tests."""

from unittest.mock import AsyncMock

import pytest

from config import ReviewConfig
from models import ChangedFile, PRMetadata


def make_patch(start: int, added: int, context: int = 1) -> str:
    """A single-hunk patch with `context` context lines followed by `added` added lines."""
    lines = [f"@@ -{start},{context} +{start},{context + added} @@"]
    lines += [f" ctx {i}" for i in range(context)]
    lines += [f"+add {i}" for i in range(added)]
    return "\n".join(lines)


@pytest.fixture
def pr():
    return PRMetadata(number=42, title="Add feature", body="Adds a feature", author="octocat", head_sha="abc123")


@pytest.fixture
def small_file():
    return ChangedFile(
        filename="src/app.py",
        status="modified",
        additions=4,
        deletions=0,
        changes=4,
        patch=make_patch(10, 4),
    )


@pytest.fixture
def gateway():
    gw = AsyncMock()
    gw.post_summary_comment.return_value = 1001
    gw.post_inline_comment.return_value = 2001
    gw.post_notice.return_value = 3001
    gw.list_changed_files.return_value = []
    return gw


@pytest.fixture
def backend():
    be = AsyncMock()
    be.review_whole_pr.return_value = "Overall the change is reasonable."
    be.review_hunk.return_value = (
        "Consider validating the input before use; a None value here raises TypeError."
    )
    return be


@pytest.fixture
def sleeps():
    """Records requested delays (in seconds) instead of sleeping."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(seconds):
        sleeps.append(seconds)

    return _sleep


@pytest.fixture
def config():
    return ReviewConfig()
