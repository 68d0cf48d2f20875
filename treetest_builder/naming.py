from __future__ import annotations

import re
from typing import Iterable

KEYWORD_PREFIX_RE = re.compile(r"^(?:when|given|it) ", re.IGNORECASE)
TOKEN_SPLIT_RE = re.compile(r"[\s\-]+")
SENTENCE_ENDINGS = (".", "!", "?")


def slug(title: str) -> str:
    text = KEYWORD_PREFIX_RE.sub("", title.strip(), count=1)
    tokens: list[str] = []
    for raw in TOKEN_SPLIT_RE.split(text):
        token = "".join(ch for ch in raw if ch.isalnum()).lower()
        if token:
            tokens.append(token)
    return "_".join(tokens)


def unit_name(action_slug: str, helper_path: Iterable[str]) -> str:
    path = list(helper_path)
    if not path:
        return f"test_{action_slug}"
    return f"test_{path[-1]}_{action_slug}"


def expects_failure(title: str, keywords: Iterable[str]) -> bool:
    folded = title.casefold()
    return any(keyword.casefold() in folded for keyword in keywords)


def format_description(text: str) -> str:
    trimmed = text.strip()
    if not trimmed:
        return ""
    capitalized = trimmed[0].upper() + trimmed[1:]
    if capitalized.endswith(SENTENCE_ENDINGS):
        return capitalized
    return capitalized + "."
