"""Client-side gate for new note submissions."""

import logging
import math
from typing import Optional, Tuple

from noteboard.exceptions import CooldownError, ErrorCode, ValidationError
from noteboard.moderation import Moderator, WordListModerator, validate_author_name

logger = logging.getLogger(__name__)


class SubmissionGate:
    """Validates a submission before it may reach the store.

    Checks run in a fixed order: cooldown, required fields, length
    ceilings, minimum lengths, author alphabet, moderation. The first
    failure raises; all of them are ``ValidationError``.
    """

    def __init__(
        self,
        moderator: Optional[Moderator] = None,
        cooldown_seconds: float = 5.0,
        max_text_length: int = 200,
        min_text_length: int = 3,
        max_author_length: int = 50,
        min_author_length: int = 2,
    ):
        self.moderator = moderator or WordListModerator()
        self.cooldown_seconds = cooldown_seconds
        self.max_text_length = max_text_length
        self.min_text_length = min_text_length
        self.max_author_length = max_author_length
        self.min_author_length = min_author_length
        self.last_submission: Optional[float] = None

    def check_cooldown(self, now: float) -> None:
        """Raise ``CooldownError`` if the last accepted submission is too recent."""
        if self.last_submission is None:
            return
        elapsed_ms = (now - self.last_submission) * 1000
        cooldown_ms = self.cooldown_seconds * 1000
        if elapsed_ms < cooldown_ms:
            wait_seconds = math.ceil((cooldown_ms - elapsed_ms) / 1000)
            logger.debug(f"Submission rejected by cooldown ({wait_seconds}s left)")
            raise CooldownError(wait_seconds)

    def record_submission(self, at: float) -> None:
        self.last_submission = at

    def validate(self, text: str, author: str) -> Tuple[str, str]:
        """Validate raw input; returns the trimmed text and author."""
        trimmed_text = text.strip()
        trimmed_author = author.strip()

        if not trimmed_text or not trimmed_author:
            raise ValidationError(
                "Please fill in both the note and author fields.",
                code=ErrorCode.NOTE_FIELDS_REQUIRED,
            )
        if len(text) > self.max_text_length:
            raise ValidationError(
                f"Note is too long. Please keep it under {self.max_text_length} characters.",
                field="text",
                code=ErrorCode.NOTE_TOO_LONG,
            )
        if len(author) > self.max_author_length:
            raise ValidationError(
                f"Author name is too long. Please keep it under {self.max_author_length} characters.",
                field="author",
                code=ErrorCode.NOTE_TOO_LONG,
            )
        if len(trimmed_text) < self.min_text_length:
            raise ValidationError(
                f"Note must be at least {self.min_text_length} characters long.",
                field="text",
                code=ErrorCode.NOTE_TOO_SHORT,
            )
        if len(trimmed_author) < self.min_author_length:
            raise ValidationError(
                f"Author name must be at least {self.min_author_length} characters long.",
                field="author",
                code=ErrorCode.NOTE_TOO_SHORT,
            )
        if not validate_author_name(trimmed_author, self.max_author_length):
            raise ValidationError(
                "Author name may only contain letters, numbers, spaces, '.', '_' and '-'.",
                field="author",
                value=trimmed_author,
                code=ErrorCode.AUTHOR_INVALID,
            )
        if self.moderator.is_flagged(trimmed_text) or self.moderator.is_flagged(trimmed_author):
            raise ValidationError(
                "Your message contains inappropriate content. Please revise and try again.",
                code=ErrorCode.CONTENT_FLAGGED,
            )
        return trimmed_text, trimmed_author

    def prepare(self, text: str, author: str) -> Tuple[str, str]:
        """Validate, then sanitize; returns what may be sent to the store.

        Sanitizing can strip markup-only input down to nothing, so the
        required-field and minimum-length checks run again on the result.
        """
        text, author = self.validate(text, author)
        text = self.moderator.sanitize(text)
        author = self.moderator.sanitize(author)
        if not text or not author:
            raise ValidationError(
                "Please fill in both the note and author fields.",
                code=ErrorCode.NOTE_FIELDS_REQUIRED,
            )
        if len(text) < self.min_text_length:
            raise ValidationError(
                f"Note must be at least {self.min_text_length} characters long.",
                field="text",
                code=ErrorCode.NOTE_TOO_SHORT,
            )
        if len(author) < self.min_author_length:
            raise ValidationError(
                f"Author name must be at least {self.min_author_length} characters long.",
                field="author",
                code=ErrorCode.NOTE_TOO_SHORT,
            )
        return text, author
