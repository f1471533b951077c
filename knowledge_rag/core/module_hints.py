"""
Module intent hints for query expansion.

Each known content module contributes a short phrase describing its writing
intent. Unknown modules get no hint.

Dependencies: None
System role: Query expansion vocabulary for the retriever
"""

from enum import Enum

TONE_SUFFIX = "professional tone actionable practical"


class ModuleKind(str, Enum):
    """Content modules with a known writing intent."""

    LINKEDIN_POST = "linkedin-post"
    TWITTER_THREAD = "twitter-thread"
    X_THREAD = "x-thread"
    BLOG_POST = "blog-post"
    EMAIL_CAMPAIGN = "email-campaign"
    CONTENT_STRATEGY = "content-strategy"

    @property
    def hint(self) -> str:
        return _HINTS[self]

    @classmethod
    def from_key(cls, module_key: str) -> "ModuleKind | None":
        """Look up a module by its key; None for unknown keys."""
        try:
            return cls(module_key)
        except ValueError:
            return None


_HINTS: dict[ModuleKind, str] = {
    ModuleKind.LINKEDIN_POST: "LinkedIn post writing professional B2B content",
    ModuleKind.TWITTER_THREAD: "Twitter thread writing engaging social media",
    ModuleKind.X_THREAD: "X thread writing engaging social media",
    ModuleKind.BLOG_POST: "blog article writing informative content",
    ModuleKind.EMAIL_CAMPAIGN: "email marketing professional communication",
    ModuleKind.CONTENT_STRATEGY: "content strategy planning marketing",
}


def expand_query(query: str, module_key: str) -> str:
    """
    Append the module's intent hint and tone words to a query.

    Args:
        query: User query
        module_key: Knowledge module key

    Returns:
        "{query}\\n{hint} professional tone actionable practical", trimmed
    """
    kind = ModuleKind.from_key(module_key)
    hint = kind.hint if kind is not None else ""
    return f"{query}\n{hint} {TONE_SUFFIX}".strip()
