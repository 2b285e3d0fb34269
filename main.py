import argparse
import asyncio
import sys

import structlog
from dotenv import load_dotenv

load_dotenv()

from agents.llm_client import GeminiClient
from agents.review_agent import GeminiReviewBackend
from config import ReviewConfig
from errors import format_error_notice
from models import ReviewOutcome
from orchestrator import ReviewOrchestrator
from utils.github_client import GitHubGateway

logger = structlog.get_logger(__name__)


def configure_logging():
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(),
        ]
    )


async def report_failure(gateway, error: BaseException) -> None:
    """Posts a categorized error notice on the PR. Never raises."""
    logger.error("Code review failed", error_type=type(error).__name__, error=str(error), exc_info=error)
    try:
        await gateway.post_notice(format_error_notice(error))
    except Exception as comment_error:
        logger.error("Failed to post error comment", error=str(comment_error))


async def review_pull_request(owner: str, repo: str, pr_number: int, config: ReviewConfig = None) -> ReviewOutcome:
    config = config or ReviewConfig.from_env()
    async with GitHubGateway(owner, repo, pr_number) as gateway:
        try:
            pr = await gateway.fetch_pr_metadata()
            backend = GeminiReviewBackend(GeminiClient())
            outcome = await ReviewOrchestrator(backend, gateway, config).run(pr)
        except Exception as e:
            await report_failure(gateway, e)
            raise
    logger.info(
        "Review complete",
        pr=pr_number,
        files=outcome.files_reviewed,
        inline_comments=outcome.inline_comments,
        skipped=outcome.skipped,
    )
    return outcome


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Review a GitHub pull request with an LLM and post the feedback.")
    parser.add_argument("owner")
    parser.add_argument("repo")
    parser.add_argument("pr_number", type=int)
    parser.add_argument("--no-inline", action="store_true", help="only post the summary review")
    args = parser.parse_args(argv)

    configure_logging()
    config = ReviewConfig.from_env()
    if args.no_inline:
        config.enable_inline_comments = False

    try:
        asyncio.run(review_pull_request(args.owner, args.repo, args.pr_number, config))
    except Exception:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
