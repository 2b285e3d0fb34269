from typing import List

import structlog

from agents.llm_client import GeminiClient
from diff_parser import extract_added_code
from models import ChangedFile, FileStatus, PRMetadata

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = (
    "You are an expert code reviewer. Focus on code quality, potential bugs, "
    "security issues, performance and maintainability. Format your response as "
    "markdown and give specific, actionable suggestions."
)

LANGUAGES = {
    "js": "javascript",
    "ts": "typescript",
    "py": "python",
    "java": "java",
    "cpp": "cpp",
    "c": "c",
    "cs": "csharp",
    "php": "php",
    "rb": "ruby",
    "go": "go",
    "rs": "rust",
    "kt": "kotlin",
    "swift": "swift",
}


def language_for(filename: str) -> str:
    """Code fence language for a filename, falling back to its extension."""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return LANGUAGES.get(ext, ext)


def build_pr_prompt(files: List[ChangedFile], pr: PRMetadata) -> str:
    parts = [
        "Please review the following pull request:",
        "",
        f"**Title:** {pr.title}",
        f"**Description:** {pr.body or 'No description provided'}",
        f"**Author:** {pr.author}",
        "",
        "**Code Changes:**",
    ]
    for f in files:
        parts.append(f"\n## File: {f.filename}")
        parts.append(f"**Status:** {f.status.value}")
        parts.append(f"**Changes:** +{f.additions} -{f.deletions}")
        if f.patch and f.status == FileStatus.added:
            # added files are sent as plain source
            parts.append(f"\n```{language_for(f.filename)}\n{extract_added_code(f.patch)}\n```")
        elif f.patch:
            parts.append(f"\n```diff\n{f.patch}\n```")
    parts.append("\nPlease provide a comprehensive code review with specific feedback and suggestions for improvement.")
    return "\n".join(parts)


def build_hunk_prompt(file: ChangedFile, start_line: int, end_line: int, context: str) -> str:
    return (
        f"Review the following code snippet from {file.filename} (lines {start_line}-{end_line}):\n\n"
        f"```{language_for(file.filename)}\n{context}\n```\n\n"
        "Provide specific feedback for this code section, focusing on potential issues, "
        "improvements, and best practices. Keep it concise."
    )


class GeminiReviewBackend:
    def __init__(self, client: GeminiClient):
        self.client = client

    async def review_whole_pr(self, files: List[ChangedFile], pr: PRMetadata) -> str:
        logger.info("Starting whole-PR review", pr=pr.number, files=len(files))
        return await self.client.generate(build_pr_prompt(files, pr), max_tokens=2000, system=SYSTEM_PROMPT)

    async def review_hunk(self, file: ChangedFile, start_line: int, end_line: int, context: str) -> str:
        logger.info("Reviewing lines", filename=file.filename, start_line=start_line, end_line=end_line)
        return await self.client.generate(
            build_hunk_prompt(file, start_line, end_line, context),
            max_tokens=500,
            system="You are an expert code reviewer. Provide concise, actionable feedback for the specific code section.",
        )
