# utils/github_client.py

import os
from typing import List, Optional

import httpx
import structlog
from dotenv import load_dotenv

from errors import ReviewError
from models import ChangedFile, PRMetadata

load_dotenv()

logger = structlog.get_logger(__name__)

GITHUB_API_BASE = "https://api.github.com"
PER_PAGE = 100


def build_headers(token: Optional[str]) -> dict:
    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": "PR-Review-Bot",
    }
    if token:
        headers["Authorization"] = f"token {token}"
    return headers


class GitHubGateway:
    """
    Repository gateway for one pull request.

    Every non-2xx response is raised as ReviewError carrying the HTTP status,
    so retry and error classification never need to know about httpx.
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.owner = owner
        self.repo = repo
        self.pr_number = pr_number
        self._client = client or httpx.AsyncClient(
            base_url=GITHUB_API_BASE,
            timeout=30.0,
            headers=build_headers(token or os.getenv("GITHUB_TOKEN")),
        )
        self._head_sha: Optional[str] = None

    async def aclose(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    @property
    def _pr_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}/pulls/{self.pr_number}"

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise ReviewError(f"GitHub request timeout: {e}") from e
        except httpx.TransportError as e:
            raise ReviewError(f"GitHub network error: {e}") from e

        if resp.is_error:
            raise ReviewError(
                f"GitHub returned {resp.status_code}: {resp.text}",
                status=resp.status_code,
            )
        return resp

    # -----------------------------------------------------------
    # Pull request metadata and file list
    # -----------------------------------------------------------
    async def fetch_pr_metadata(self) -> PRMetadata:
        j = (await self._request("GET", self._pr_path)).json()
        self._head_sha = j["head"]["sha"]
        return PRMetadata(
            number=j["number"],
            title=j.get("title") or "",
            body=j.get("body"),
            author=(j.get("user") or {}).get("login", "unknown"),
            head_sha=self._head_sha,
        )

    async def list_changed_files(self) -> List[ChangedFile]:
        files: List[ChangedFile] = []
        page = 1
        while True:
            resp = await self._request(
                "GET",
                f"{self._pr_path}/files",
                params={"per_page": PER_PAGE, "page": page},
            )
            batch = resp.json()
            files.extend(ChangedFile(**f) for f in batch)
            if len(batch) < PER_PAGE:
                break
            page += 1
        logger.info("Retrieved PR files", pr=self.pr_number, count=len(files))
        return files

    async def _head(self) -> str:
        if self._head_sha is None:
            await self.fetch_pr_metadata()
        return self._head_sha

    # -----------------------------------------------------------
    # Comments
    # -----------------------------------------------------------
    async def post_summary_comment(self, text: str) -> int:
        """Posts the summary as a COMMENT review on the head commit."""
        payload = {"body": text, "event": "COMMENT", "commit_id": await self._head()}
        review = (await self._request("POST", f"{self._pr_path}/reviews", json=payload)).json()
        logger.info("Review comment created", review_id=review.get("id"))
        return review.get("id")

    async def post_inline_comment(self, filename: str, line_number: int, text: str, side: str = "RIGHT") -> int:
        payload = {
            "body": text,
            "commit_id": await self._head(),
            "path": filename,
            "line": line_number,
            "side": side,
        }
        comment = (await self._request("POST", f"{self._pr_path}/comments", json=payload)).json()
        return comment.get("id")

    async def post_notice(self, text: str) -> int:
        """Conversation-level comment (not inline) on the pull request."""
        path = f"/repos/{self.owner}/{self.repo}/issues/{self.pr_number}/comments"
        comment = (await self._request("POST", path, json={"body": text})).json()
        logger.info("Issue comment created", comment_id=comment.get("id"))
        return comment.get("id")
