"""Cheap keyword extraction from a movie's title and overview."""

import re

from .config import MAX_KEYWORDS, MIN_KEYWORD_LENGTH, STOP_WORDS

_NON_WORD = re.compile(r"[^\w\s]", re.ASCII)


def extract_keywords(
    title: str | None,
    overview: str | None,
    stop_words: frozenset[str] = STOP_WORDS,
    limit: int = MAX_KEYWORDS,
) -> list[str]:
    """
    Return salient lowercase tokens from title + overview.

    Punctuation becomes whitespace, short tokens and stop words are dropped,
    and the first `limit` survivors are kept in text order. Tokens are not
    stemmed or deduplicated.
    """
    text = f"{title or ''} {overview or ''}".lower()
    text = _NON_WORD.sub(" ", text)

    keywords = [
        word for word in text.split()
        if len(word) >= MIN_KEYWORD_LENGTH and word not in stop_words
    ]
    return keywords[:limit]
