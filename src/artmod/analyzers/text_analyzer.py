"""
Text content analysis for titles, descriptions and tags.

Pure and synchronous: no I/O, no randomness.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from artmod.datatypes.moderation_datatypes import Flag, FlagType, Severity, TextAnalysis

DEFAULT_BANNED_KEYWORDS: tuple[str, ...] = (
    "explicit", "nsfw", "adult", "xxx", "porn", "nude", "naked",
    "sex", "sexual", "erotic", "fetish", "kinky",
)

DEFAULT_SPAM_KEYWORDS: tuple[str, ...] = (
    "buy now", "click here", "free money", "get rich", "limited time",
    "act now", "urgent", "winner", "congratulations", "prize",
)

SPAM_MATCH_LIMIT = 2
CAPS_RATIO_LIMIT = 0.7
CAPS_MIN_TITLE_LENGTH = 5
MIN_TITLE_LENGTH = 3
MIN_DESCRIPTION_LENGTH = 10
FLAG_PENALTY = 0.2


def uppercase_ratio(text: str) -> float:
    """Share of alphabetic characters that are upper case."""
    letters = [char for char in text if char.isalpha()]
    if not letters:
        return 0.0
    return sum(1 for char in letters if char.isupper()) / len(letters)


class TextAnalyzer:
    """Keyword, spam, capitalization and length checks over uploader text."""

    def __init__(
        self,
        banned_keywords: Optional[Iterable[str]] = None,
        spam_keywords: Optional[Iterable[str]] = None,
    ) -> None:
        self.banned_keywords = tuple(k.lower() for k in (banned_keywords or DEFAULT_BANNED_KEYWORDS))
        self.spam_keywords = tuple(k.lower() for k in (spam_keywords or DEFAULT_SPAM_KEYWORDS))

    def analyze(self, title: str = "", description: str = "", tags: Sequence[str] = ()) -> TextAnalysis:
        title = title or ""
        description = description or ""
        all_text = f"{title} {description} {' '.join(tags)}".lower()
        flags: List[Flag] = []

        banned = [keyword for keyword in self.banned_keywords if keyword in all_text]
        if banned:
            flags.append(
                Flag(
                    type=FlagType.INAPPROPRIATE_TEXT,
                    severity=Severity.HIGH,
                    message=f"Inappropriate keywords detected: {', '.join(banned)}",
                    keywords=tuple(banned),
                )
            )

        spam = [keyword for keyword in self.spam_keywords if keyword in all_text]
        if len(spam) > SPAM_MATCH_LIMIT:
            flags.append(
                Flag(
                    type=FlagType.SPAM,
                    severity=Severity.MEDIUM,
                    message="Potential spam content detected",
                    keywords=tuple(spam),
                )
            )

        if len(title) > CAPS_MIN_TITLE_LENGTH and uppercase_ratio(title) > CAPS_RATIO_LIMIT:
            flags.append(
                Flag(
                    type=FlagType.EXCESSIVE_CAPS,
                    severity=Severity.LOW,
                    message="Excessive use of capital letters",
                )
            )

        if len(title) < MIN_TITLE_LENGTH:
            flags.append(Flag(type=FlagType.LOW_QUALITY, severity=Severity.MEDIUM, message="Title too short"))

        if len(description) < MIN_DESCRIPTION_LENGTH:
            flags.append(Flag(type=FlagType.LOW_QUALITY, severity=Severity.LOW, message="Description too short"))

        return TextAnalysis(
            passed=not flags,
            flags=tuple(flags),
            score=round(max(0.0, 1.0 - FLAG_PENALTY * len(flags)), 4),
        )
