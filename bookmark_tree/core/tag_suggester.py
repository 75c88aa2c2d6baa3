"""
Tag Suggestion

Optional enrichment of a bookmark's tags. A suggester takes a URL and a
title and proposes up to three short lowercase tags; the engine works the
same whether it returns tags, nothing, or fails.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional
from urllib.parse import urlparse

MAX_SUGGESTED_TAGS = 3
MAX_TAG_LENGTH = 20

logger = logging.getLogger(__name__)


class TagSuggester(ABC):
    """Interface for tag suggestion collaborators."""

    @abstractmethod
    def suggest_tags(self, url: str, title: str) -> List[str]:
        """
        Suggest tags for a bookmark.

        Args:
            url: Bookmark URL
            title: Bookmark title

        Returns:
            Suggested tags; may raise on failure
        """


class KeywordTagSuggester(TagSuggester):
    """Offline suggester based on well-known hosts and title keywords."""

    PLATFORM_TAGS = {
        "github.com": ["code", "repository"],
        "gitlab.com": ["code", "repository"],
        "stackoverflow.com": ["programming", "qa"],
        "youtube.com": ["video"],
        "medium.com": ["article", "blog"],
        "reddit.com": ["discussion", "community"],
        "wikipedia.org": ["reference", "encyclopedia"],
        "developer.mozilla.org": ["web", "documentation"],
        "arxiv.org": ["research", "paper"],
    }

    KEYWORD_TAGS = {
        "tutorial": ["tutorial", "guide", "how-to", "learn", "course"],
        "documentation": ["docs", "documentation", "reference", "manual"],
        "news": ["news", "announcement", "release"],
        "python": ["python", "django", "flask", "pandas"],
        "javascript": ["javascript", "typescript", "react", "node"],
        "design": ["design", "figma", "typography"],
        "cloud": ["aws", "azure", "kubernetes", "docker"],
    }

    STOP_WORDS = {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "how", "what", "why", "your", "you",
        "this", "that", "home", "page", "welcome", "index",
    }

    def suggest_tags(self, url: str, title: str) -> List[str]:
        tags: List[str] = []

        host = (urlparse(url).hostname or "").lower()
        if host.startswith("www."):
            host = host[4:]

        for platform, platform_tags in self.PLATFORM_TAGS.items():
            if host == platform or host.endswith("." + platform):
                tags.extend(platform_tags)
                break

        text = f"{title} {url}".lower()
        for tag, keywords in self.KEYWORD_TAGS.items():
            if any(keyword in text for keyword in keywords):
                tags.append(tag)

        for word in re.findall(r"[a-z][a-z0-9\-]+", (title or "").lower()):
            if len(word) > 3 and word not in self.STOP_WORDS:
                tags.append(word)

        return clean_tags(tags)


def clean_tags(tags: List[str], limit: int = MAX_SUGGESTED_TAGS) -> List[str]:
    """
    Lowercase, trim and de-duplicate suggested tags, keeping their order.

    Args:
        tags: Raw suggestions
        limit: Maximum number of tags to keep

    Returns:
        Cleaned tags
    """
    cleaned: List[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            continue
        tag = re.sub(r"[^\w\-]", "", tag.strip().lower())
        if 2 <= len(tag) <= MAX_TAG_LENGTH and tag not in cleaned:
            cleaned.append(tag)
        if len(cleaned) >= limit:
            break
    return cleaned


def suggest_tags_safely(
    suggester: Optional[TagSuggester], url: str, title: str
) -> List[str]:
    """
    Ask a suggester for tags, treating any failure as "no suggestions".

    Args:
        suggester: Collaborator to ask; None means suggestions are off
        url: Bookmark URL
        title: Bookmark title

    Returns:
        Up to three cleaned tags, or an empty list
    """
    if suggester is None:
        return []

    try:
        return clean_tags(suggester.suggest_tags(url, title) or [])
    except Exception as e:
        logger.warning(f"Tag suggestion failed for {url}: {e}")
        return []


def merge_tags(existing: List[str], suggested: List[str]) -> List[str]:
    """Append suggestions that are not already present, keeping existing order."""
    return list(existing) + [tag for tag in suggested if tag not in existing]
