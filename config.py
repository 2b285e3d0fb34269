import os
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from file_filter import DEFAULT_EXCLUSIONS, DEFAULT_SIZE_THRESHOLD
from models import RetryPolicy


class ReviewConfig(BaseModel):
    """Knobs for a single pull request review."""

    max_review_changes: int = 1000
    max_files_for_inline: int = 5
    max_inline_comments: int = 10
    review_delay_ms: int = 1000
    rate_limit_pause_ms: int = 5000
    enable_inline_comments: bool = True
    size_threshold: int = DEFAULT_SIZE_THRESHOLD
    exclusion_patterns: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_EXCLUSIONS))
    overall_retry_attempts: int = Field(default=2, ge=1)
    overall_retry_base_delay_ms: int = 2000
    min_file_additions: int = 3
    min_hunk_added_lines: int = 3
    min_feedback_length: int = 50

    @property
    def overall_retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.overall_retry_attempts,
            base_delay_ms=self.overall_retry_base_delay_ms,
        )

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "ReviewConfig":
        """
        Build a config from REVIEW_* environment variables (a .env file is
        loaded first). Unset variables keep their defaults.
        """
        load_dotenv(env_file)
        fields = {
            "max_review_changes": "REVIEW_MAX_CHANGES",
            "max_files_for_inline": "REVIEW_MAX_FILES_FOR_INLINE",
            "max_inline_comments": "REVIEW_MAX_INLINE_COMMENTS",
            "review_delay_ms": "REVIEW_DELAY_MS",
            "rate_limit_pause_ms": "REVIEW_RATE_LIMIT_PAUSE_MS",
            "enable_inline_comments": "REVIEW_ENABLE_INLINE_COMMENTS",
            "size_threshold": "REVIEW_SIZE_THRESHOLD",
            "overall_retry_attempts": "REVIEW_RETRY_ATTEMPTS",
            "overall_retry_base_delay_ms": "REVIEW_RETRY_BASE_DELAY_MS",
        }
        values = {name: os.getenv(var) for name, var in fields.items() if os.getenv(var) is not None}

        extra = os.getenv("REVIEW_EXTRA_EXCLUDE_PATTERNS")
        if extra:
            patterns = dict(DEFAULT_EXCLUSIONS)
            for pattern in extra.split(","):
                if pattern.strip():
                    patterns[pattern.strip()] = "excluded by configuration"
            values["exclusion_patterns"] = patterns

        return cls(**values)
