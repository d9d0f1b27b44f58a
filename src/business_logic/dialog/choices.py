from __future__ import annotations

"""Choice lists: recognition of a user's pick and rendering of the options."""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from business_logic.dialog.state import state_type

__all__ = [
    "Choice",
    "ChoiceFactory",
    "FoundChoice",
    "ListStyle",
    "recognize_choice",
]

_ORDINALS = {
    "first": 1,
    "second": 2,
    "third": 3,
    "fourth": 4,
    "fifth": 5,
    "sixth": 6,
    "seventh": 7,
    "eighth": 8,
    "ninth": 9,
    "tenth": 10,
    "last": -1,
}
_WHITESPACE = re.compile(r"\s+")
_INLINE_MAX_CHARS = 125


@state_type
@dataclass(slots=True)
class Choice:
    value: str
    synonyms: List[str] = field(default_factory=list)


@state_type
@dataclass(slots=True)
class FoundChoice:
    value: str
    index: int
    score: float
    synonym: Optional[str] = None


class ListStyle:
    NONE = "none"
    AUTO = "auto"
    INLINE = "inline"
    LIST = "list"


def _normalize(text: str) -> str:
    return _WHITESPACE.sub(" ", (text or "").strip().lower())


def _contains_phrase(utterance: str, phrase: str) -> bool:
    return re.search(rf"(?<!\w){re.escape(phrase)}(?!\w)", utterance) is not None


def _match_index(utterance: str, count: int) -> Optional[int]:
    token = utterance.strip(" .)(#")
    if token.isdigit():
        position = int(token)
        if 1 <= position <= count:
            return position - 1
        return None
    ordinal = _ORDINALS.get(token)
    if ordinal is None:
        return None
    if ordinal == -1:
        return count - 1
    if ordinal <= count:
        return ordinal - 1
    return None


def recognize_choice(utterance: str, choices: Sequence[Choice]) -> Optional[FoundChoice]:
    """
    Match `utterance` against the choice values and synonyms, case-insensitively.

    An exact match on a value or synonym wins outright. Otherwise the longest value or synonym that
    appears as a whole phrase inside the utterance is picked. Bare positions ("2", "second") select
    by index. Returns None when nothing matches.
    """

    text = _normalize(utterance)
    if not text or not choices:
        return None

    best: Optional[FoundChoice] = None
    for index, choice in enumerate(choices):
        for candidate in [choice.value, *choice.synonyms]:
            phrase = _normalize(candidate)
            if not phrase:
                continue
            if phrase == text:
                return FoundChoice(value=choice.value, index=index, score=1.0, synonym=candidate)
            if _contains_phrase(text, phrase):
                score = len(phrase) / len(text)
                if best is None or score > best.score:
                    best = FoundChoice(value=choice.value, index=index, score=score, synonym=candidate)
    if best is not None:
        return best

    position = _match_index(text, len(choices))
    if position is not None:
        return FoundChoice(value=choices[position].value, index=position, score=1.0, synonym=text)
    return None


class ChoiceFactory:
    """Render a prompt text together with its options."""

    @staticmethod
    def to_choices(values: Iterable[str | Choice]) -> List[Choice]:
        return [value if isinstance(value, Choice) else Choice(value=str(value)) for value in values]

    @staticmethod
    def inline(
        choices: Sequence[Choice],
        text: Optional[str] = None,
        *,
        separator: str = ", ",
        inline_or: str = " or ",
        inline_or_more: str = ", or ",
        include_numbers: bool = True,
    ) -> str:
        rendered = [
            f"({index}) {choice.value}" if include_numbers else choice.value
            for index, choice in enumerate(choices, start=1)
        ]
        if not rendered:
            body = ""
        elif len(rendered) == 1:
            body = rendered[0]
        elif len(rendered) == 2:
            body = inline_or.join(rendered)
        else:
            body = separator.join(rendered[:-1]) + inline_or_more + rendered[-1]
        return f"{text} {body}".strip() if text else body

    @staticmethod
    def list_style(choices: Sequence[Choice], text: Optional[str] = None, *, include_numbers: bool = True) -> str:
        lines = [text] if text else []
        for index, choice in enumerate(choices, start=1):
            prefix = f"   {index}. " if include_numbers else "   - "
            lines.append(f"{prefix}{choice.value}")
        return "\n".join(lines)

    @classmethod
    def render(cls, choices: Sequence[Choice], text: Optional[str] = None, style: str = ListStyle.AUTO) -> str:
        if style == ListStyle.NONE:
            return text or ""
        if style == ListStyle.AUTO:
            total = sum(len(choice.value) for choice in choices)
            style = ListStyle.INLINE if total <= _INLINE_MAX_CHARS else ListStyle.LIST
        if style == ListStyle.INLINE:
            return cls.inline(choices, text)
        return cls.list_style(choices, text)
