"""Resolve ``@name`` mentions in message text against room members."""

from __future__ import annotations

import re
from typing import Iterable, Protocol

MENTION_PATTERN = re.compile(r"(?<![\w@])@([\w.\-]+)")


class Mentionable(Protocol):
    id: int
    name: str


def _squash(value: str) -> str:
    return re.sub(r"\s+", "", value).casefold()


def _match_token(token: str, members: list[Mentionable]) -> int | None:
    needle = token.casefold()

    by_first_name = [
        member for member in members
        if member.name and (member.name.split() or [""])[0].casefold() == needle
    ]
    if len(by_first_name) == 1:
        return by_first_name[0].id
    if len(by_first_name) > 1:
        return None

    by_substring = [member for member in members if member.name and needle in _squash(member.name)]
    if len(by_substring) == 1:
        return by_substring[0].id
    return None


def resolve_mentions(text: str | None, members: Iterable[Mentionable]) -> list[int]:
    """Return ids of members mentioned in ``text``, in order of first mention.

    A token is matched on the member's first name, then on a substring of the
    full name with spaces removed. Tokens that match nobody, or more than one
    member, are ignored and stay plain text.
    """

    if not text:
        return []

    candidates = list(members)
    resolved: list[int] = []
    for match in MENTION_PATTERN.finditer(text):
        token = match.group(1).rstrip(".-")
        if not token:
            continue
        member_id = _match_token(token, candidates)
        if member_id is not None and member_id not in resolved:
            resolved.append(member_id)
    return resolved
