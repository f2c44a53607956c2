"""Utilities for turning LLM replies into plain prose suitable for speech."""

from __future__ import annotations
import re

_CODE_FENCE = re.compile(r"```[A-Za-z0-9_-]*")
_HEADING = re.compile(r"^\s{0,3}#{1,6}\s*", re.MULTILINE)
_BULLET = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+", re.MULTILINE)
_QUOTE = re.compile(r"^\s*>\s?", re.MULTILINE)
_LINK = re.compile(r"\[([^\]]*)\]\([^)]*\)")
_BRACKETED = re.compile(r"\[[^\]]*\]|\{[^}]*\}|</?[A-Za-z][^>]*>")
_PARENTHETICAL = re.compile(r"\([^()]*\)")
_EMPHASIS = re.compile(r"(\*{1,3}|_{1,3}|~~|`+)")
_SPACE_BEFORE_PUNCT = re.compile(r"\s+([,.;:!?])")
_WHITESPACE = re.compile(r"\s+")


def to_plain_prose(text: str) -> str:
    """
    Strip markdown emphasis/heading/list markers and bracketed or
    parenthetical asides; collapse whitespace.
    """
    if not text:
        return ""
    t = _CODE_FENCE.sub("", text)
    t = _HEADING.sub("", t)
    t = _BULLET.sub("", t)
    t = _QUOTE.sub("", t)
    t = _LINK.sub(r"\1", t)
    t = _BRACKETED.sub("", t)
    # nested parentheses collapse from the inside out
    prev = None
    while prev != t:
        prev = t
        t = _PARENTHETICAL.sub("", t)
    t = _EMPHASIS.sub("", t)
    t = _WHITESPACE.sub(" ", t)
    t = _SPACE_BEFORE_PUNCT.sub(r"\1", t)
    return t.strip()
