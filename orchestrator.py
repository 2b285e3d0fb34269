"""
Review orchestration for a single pull request.

Start -> Filtering -> BudgetDecision -> OverallReview -> InlineReview -> Done

Every collaborator call and every pause is awaited in sequence, so a run
never has two requests in flight and the inline comment counter has one
writer. Any exception escaping run() means the review failed.
"""
import asyncio
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Protocol

import structlog

from config import ReviewConfig
from diff_parser import parse_hunks
from errors import is_rate_limited
from file_filter import filter_reviewable, sum_changes
from models import (
    ChangedFile,
    Hunk,
    InlineCommentState,
    PRMetadata,
    ReviewBudget,
    ReviewMode,
    ReviewOutcome,
)
from utils.retry import run_with_retry

logger = structlog.get_logger(__name__)

NO_FEEDBACK_PHRASES = ("looks good", "no issues")


class ReviewBackend(Protocol):
    async def review_whole_pr(self, files: List[ChangedFile], pr: PRMetadata) -> str: ...

    async def review_hunk(self, file: ChangedFile, start_line: int, end_line: int, context: str) -> str: ...


class RepositoryGateway(Protocol):
    async def list_changed_files(self) -> List[ChangedFile]: ...

    async def post_summary_comment(self, text: str) -> int: ...

    async def post_inline_comment(self, filename: str, line_number: int, text: str, side: str = "RIGHT") -> int: ...

    async def post_notice(self, text: str) -> int: ...


class ReviewState(str, Enum):
    START = "start"
    FILTERING = "filtering"
    BUDGET_DECISION = "budget_decision"
    OVERALL_REVIEW = "overall_review"
    INLINE_REVIEW = "inline_review"
    DONE = "done"
    FAILED = "failed"


def decide_budget(files: List[ChangedFile], limit: int) -> ReviewBudget:
    total = sum_changes(files)
    mode = ReviewMode.overview if total > limit else ReviewMode.comprehensive
    return ReviewBudget(total_changes=total, limit=limit, mode=mode)


def is_no_feedback(text: Optional[str], min_length: int = 50) -> bool:
    """True when a line-level critique is too short or just says all is well."""
    if not text or len(text) < min_length:
        return True
    lowered = text.lower()
    return any(phrase in lowered for phrase in NO_FEEDBACK_PHRASES)


def build_summary_header(files: List[ChangedFile], mode: ReviewMode) -> str:
    additions = sum(f.additions for f in files)
    deletions = sum(f.deletions for f in files)
    return (
        "## 🤖 AI Code Review\n\n"
        f"**Files reviewed:** {len(files)} | "
        f"**Additions:** +{additions} | "
        f"**Deletions:** -{deletions} | "
        f"**Mode:** {mode.label}\n\n"
        "---\n\n"
    )


class ReviewOrchestrator:
    """Runs one review of one pull request. Create a new instance per review."""

    def __init__(
        self,
        backend: ReviewBackend,
        gateway: RepositoryGateway,
        config: Optional[ReviewConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.backend = backend
        self.gateway = gateway
        self.config = config or ReviewConfig()
        self.sleep = sleep
        self.state = ReviewState.START
        self.inline_state = InlineCommentState(max_inline_comments=self.config.max_inline_comments)

    def _enter(self, state: ReviewState) -> None:
        logger.debug("Review state change", previous=self.state.value, state=state.value)
        self.state = state

    async def _pause(self, ms: int) -> None:
        await self.sleep(ms / 1000)

    async def run(self, pr: PRMetadata, files: Optional[List[ChangedFile]] = None) -> ReviewOutcome:
        if self.state != ReviewState.START:
            raise RuntimeError("ReviewOrchestrator instances are single-use")
        try:
            return await self._run(pr, files)
        except BaseException:
            self._enter(ReviewState.FAILED)
            raise

    async def _run(self, pr: PRMetadata, files: Optional[List[ChangedFile]]) -> ReviewOutcome:
        log = logger.bind(pr=pr.number)
        cfg = self.config

        self._enter(ReviewState.FILTERING)
        if files is None:
            files = await self.gateway.list_changed_files()
        eligible = filter_reviewable(files, cfg.exclusion_patterns, cfg.size_threshold)
        log.info("Filtered files", total=len(files), eligible=len(eligible))

        if not eligible:
            await self.gateway.post_notice(
                "🔍 No reviewable files found in this PR. Lock files, generated or "
                "build output, vendored code, deleted files and very large diffs are skipped."
            )
            self._enter(ReviewState.DONE)
            return ReviewOutcome(skipped=True)

        self._enter(ReviewState.BUDGET_DECISION)
        budget = decide_budget(eligible, cfg.max_review_changes)
        log.info("Review budget", total_changes=budget.total_changes, mode=budget.mode.value)
        if budget.mode == ReviewMode.overview:
            await self.gateway.post_notice(
                f"📊 This PR has {budget.total_changes} changes, more than the "
                f"{budget.limit} reviewed in detail. Providing an overview review; "
                "inline comments are disabled."
            )

        self._enter(ReviewState.OVERALL_REVIEW)
        review_text = await run_with_retry(
            lambda: self.backend.review_whole_pr(eligible, pr),
            cfg.overall_retry_policy,
            sleep=self.sleep,
        )
        summary_id = await self.gateway.post_summary_comment(
            build_summary_header(eligible, budget.mode) + review_text
        )
        log.info("Posted summary review", comment_id=summary_id)

        outcome = ReviewOutcome(
            files_reviewed=len(eligible),
            budget=budget,
            summary_comment_id=summary_id,
        )

        if self._inline_enabled(eligible, budget):
            self._enter(ReviewState.INLINE_REVIEW)
            await self._review_inline(eligible)
            outcome.inline_comments = self.inline_state.comments_created
            log.info("Inline review finished", comments=outcome.inline_comments)

        self._enter(ReviewState.DONE)
        return outcome

    def _inline_enabled(self, eligible: List[ChangedFile], budget: ReviewBudget) -> bool:
        cfg = self.config
        return (
            cfg.enable_inline_comments
            and len(eligible) <= cfg.max_files_for_inline
            and budget.total_changes <= cfg.max_review_changes
        )

    async def _review_inline(self, eligible: List[ChangedFile]) -> None:
        cfg = self.config
        for file in eligible:
            if not file.patch or file.additions < cfg.min_file_additions:
                continue
            for hunk in parse_hunks(file.patch):
                if len(hunk.added_line_numbers) < cfg.min_hunk_added_lines:
                    continue
                if self.inline_state.exhausted:
                    logger.info("Inline comment limit reached", limit=cfg.max_inline_comments)
                    return
                await self._review_hunk(file, hunk)

    async def _review_hunk(self, file: ChangedFile, hunk: Hunk) -> None:
        cfg = self.config
        try:
            critique = await self.backend.review_hunk(
                file, hunk.start_line, hunk.end_line, hunk.context_text()
            )
            if is_no_feedback(critique, cfg.min_feedback_length):
                logger.debug("No actionable feedback", filename=file.filename, start_line=hunk.start_line)
                return

            line = hunk.added_line_numbers[0]
            await self.gateway.post_inline_comment(file.filename, line, critique, side="RIGHT")
            self.inline_state.record()
            logger.info("Posted inline comment", filename=file.filename, line=line)

            if not self.inline_state.exhausted:
                await self._pause(cfg.review_delay_ms)
        except Exception as e:
            if is_rate_limited(e):
                logger.warning("Rate limited during inline review, pausing", pause_ms=cfg.rate_limit_pause_ms)
                await self._pause(cfg.rate_limit_pause_ms)
                return
            logger.error(
                "Inline review failed for hunk",
                filename=file.filename,
                start_line=hunk.start_line,
                error=str(e),
            )
