"""@mention parsing and resolution.

One parser serves every comment surface (version notes, stage notes, chat).

Token grammar: an ``@`` at the start of the text or after a non-word
character, followed by one or more runs of word characters separated by
spaces or tabs. A token ends at a line break, at the next ``@``, or at any
other non-word character such as punctuation.

Resolution against the roster tries the token's word prefixes from longest
to shortest, so "@Aaron Smith thanks" can still match "Aaron Smith".
Rules are applied in order, each over all prefixes:

1. case-insensitive equality with the full name
2. case-insensitive substring (which includes prefix) of the full name
3. case-insensitive equality with the first name, where names are split on
   whitespace and parentheses

The first roster entry that satisfies a rule wins. A member is reported at
most once per text, in order of first appearance; tokens that match no one
stay plain text.
"""

from __future__ import annotations

import html
import re
from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass

MENTION_PATTERN = re.compile(r"(?<!\w)@(\w+(?:[ \t]+\w+)*)")
_WORD = re.compile(r"\w+")
_NAME_PARTS = re.compile(r"[\s()]+")

MENTION_TEMPLATE = '<span class="mention" data-user-id="{user_id}">@{text}</span>'


@dataclass(frozen=True)
class RosterMember:
    """A mentionable person: identifier plus full display name."""

    id: Hashable
    name: str


@dataclass(frozen=True)
class ResolvedMention:
    """A token occurrence that resolved to a roster member.

    Attributes:
        user_id: Identifier of the matched member.
        display_name: The member's roster name.
        text: The matched portion of the token, as written.
        start: Offset of the ``@`` in the source text.
        end: Offset just past the matched text.
    """

    user_id: Hashable
    display_name: str
    text: str
    start: int
    end: int


def extract_tokens(text: str) -> list[str]:
    """Return the raw @tokens in text, without the leading ``@``."""
    return [match.group(1) for match in MENTION_PATTERN.finditer(text)]


def _first_name(name: str) -> str:
    parts = [part for part in _NAME_PARTS.split(name) if part]
    return parts[0].lower() if parts else ""


def _exact(phrase: str, member: RosterMember) -> bool:
    return phrase == member.name.lower()


def _partial(phrase: str, member: RosterMember) -> bool:
    return phrase in member.name.lower()


def _first_name_only(phrase: str, member: RosterMember) -> bool:
    return phrase == _first_name(member.name)


_RULES: tuple[Callable[[str, RosterMember], bool], ...] = (_exact, _partial, _first_name_only)


def _candidates(match: re.Match[str]) -> list[tuple[str, int]]:
    """Word prefixes of a token, longest first, with their end offsets."""
    words = list(_WORD.finditer(match.string, match.start(1), match.end(1)))
    candidates = []
    for count in range(len(words), 0, -1):
        phrase = " ".join(word.group(0) for word in words[:count])
        candidates.append((phrase.lower(), words[count - 1].end()))
    return candidates


def _resolve_token(
    match: re.Match[str],
    roster: Sequence[RosterMember],
) -> ResolvedMention | None:
    candidates = _candidates(match)
    for rule in _RULES:
        for phrase, end in candidates:
            for member in roster:
                if rule(phrase, member):
                    return ResolvedMention(
                        user_id=member.id,
                        display_name=member.name,
                        text=match.string[match.start(1):end],
                        start=match.start(),
                        end=end,
                    )
    return None


def find_mentions(text: str, roster: Sequence[RosterMember]) -> list[ResolvedMention]:
    """Resolve every @token occurrence, keeping repeats of the same member.

    Args:
        text: Raw comment text.
        roster: Mentionable members in priority order.

    Returns:
        One ResolvedMention per token that matched, in text order.
    """
    found = []
    for match in MENTION_PATTERN.finditer(text):
        resolved = _resolve_token(match, roster)
        if resolved is not None:
            found.append(resolved)
    return found


def resolve_mentions(text: str, roster: Sequence[RosterMember]) -> list[ResolvedMention]:
    """Resolve the distinct members mentioned in text.

    Pure and order-preserving: the same text and roster always yield the
    same list, and each member appears at most once.

    Args:
        text: Raw comment text.
        roster: Mentionable members in priority order.

    Returns:
        First occurrence of each mentioned member, in text order.

    Example:
        >>> roster = [RosterMember(1, "Sammy Lee"), RosterMember(2, "Aaron Smith")]
        >>> [m.user_id for m in resolve_mentions("Hey @sammy and @Aaron Smith, check this", roster)]
        [1, 2]
    """
    seen: set[Hashable] = set()
    unique = []
    for mention in find_mentions(text, roster):
        if mention.user_id in seen:
            continue
        seen.add(mention.user_id)
        unique.append(mention)
    return unique


def highlight_mentions(
    text: str,
    roster: Sequence[RosterMember],
    template: str = MENTION_TEMPLATE,
) -> str:
    """Render text as HTML with every resolved mention wrapped.

    Unmatched text (including unresolved @tokens) is HTML-escaped and
    otherwise left alone.

    Args:
        text: Raw comment text.
        roster: Mentionable members in priority order.
        template: Format string receiving ``user_id`` and ``text``.

    Returns:
        HTML-safe string.
    """
    pieces = []
    cursor = 0
    for mention in find_mentions(text, roster):
        pieces.append(html.escape(text[cursor:mention.start]))
        pieces.append(
            template.format(
                user_id=html.escape(str(mention.user_id)),
                text=html.escape(mention.text),
            )
        )
        cursor = mention.end
    pieces.append(html.escape(text[cursor:]))
    return "".join(pieces)
