"""Spoken-style directive detection and speech parameter resolution."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

from .models import DEFAULT_PITCH, DEFAULT_RATE, DEFAULT_VOLUME, SpeechParameters


class DirectiveKind(str, Enum):
    POSITIONAL = "positional"
    SUBSTRING = "substring"


@dataclass(slots=True, frozen=True)
class Directive:
    """A keyword found in the input text and the parameter changes it makes."""

    keyword: str
    kind: DirectiveKind
    changes: tuple[tuple[str, float], ...]

    @property
    def value(self) -> float | None:
        if self.kind == DirectiveKind.POSITIONAL:
            return self.changes[0][1]
        return None


# Plain decimal or exponent numbers; rejects forms like "1_5" that float() accepts.
_NUMBER_PATTERN = re.compile(r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf|infinity|nan)", re.IGNORECASE)

# keyword token -> parameter set from the token that follows it
POSITIONAL_DIRECTIVES: tuple[tuple[str, str], ...] = (
    ("speed", "rate"),
    ("pitch", "pitch"),
    ("toot", "volume"),
)

# Evaluated in order after positional directives; later entries win.
SUBSTRING_DIRECTIVES: tuple[tuple[str, tuple[tuple[str, float], ...]], ...] = (
    ("normal", (("rate", DEFAULT_RATE), ("pitch", DEFAULT_PITCH), ("volume", DEFAULT_VOLUME))),
    ("quickly", (("rate", 3.0),)),
    ("slowly", (("rate", 0.5),)),
    ("low", (("pitch", 0.5),)),
    ("high", (("pitch", 3.0),)),
    ("soft", (("volume", 0.1),)),
    ("loud", (("volume", 1.0),)),
)


class ParameterResolver:
    """Resolves directive keywords embedded in text into speech parameters.

    Resolution is a pure function of the text and the starting parameters; the
    text is never modified, so directive words are spoken along with the rest.
    Matching is case-sensitive. Substring keywords match anywhere in the text,
    except where the match is part of a longer keyword match.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("voice_queue.directives")

    def detect(self, text: str) -> list[Directive]:
        """Return recognized directives in the order they are applied."""
        tokens = text.split()
        found: list[Directive] = []

        for keyword, field_name in POSITIONAL_DIRECTIVES:
            value = self._value_after(tokens, keyword)
            if value is not None:
                found.append(Directive(keyword, DirectiveKind.POSITIONAL, ((field_name, value),)))

        spans = {keyword: self._occurrences(text, keyword) for keyword, _ in SUBSTRING_DIRECTIVES}
        for keyword, changes in SUBSTRING_DIRECTIVES:
            if any(not self._inside_other_keyword(keyword, span, spans) for span in spans[keyword]):
                found.append(Directive(keyword, DirectiveKind.SUBSTRING, changes))

        return found

    def resolve(self, text: str, current: SpeechParameters) -> SpeechParameters:
        """Apply every directive in ``text`` on top of ``current``."""
        directives = self.detect(text)
        if not directives:
            return current

        changes: dict[str, float] = {}
        for directive in directives:
            changes.update(directive.changes)

        resolved = current.with_changes(**changes)
        self._logger.debug(
            "directives_resolved",
            extra={
                "directives": [directive.keyword for directive in directives],
                "rate": resolved.rate,
                "pitch": resolved.pitch,
                "volume": resolved.volume,
            },
        )
        return resolved

    @staticmethod
    def _occurrences(text: str, keyword: str) -> list[tuple[int, int]]:
        spans: list[tuple[int, int]] = []
        start = text.find(keyword)
        while start >= 0:
            spans.append((start, start + len(keyword)))
            start = text.find(keyword, start + 1)
        return spans

    @staticmethod
    def _inside_other_keyword(
        keyword: str,
        span: tuple[int, int],
        spans: dict[str, list[tuple[int, int]]],
    ) -> bool:
        # "low" inside "slowly" belongs to the longer keyword.
        start, end = span
        return any(
            other != keyword and other_start <= start and end <= other_end
            for other, other_spans in spans.items()
            for other_start, other_end in other_spans
        )

    @staticmethod
    def _value_after(tokens: list[str], keyword: str) -> float | None:
        try:
            index = tokens.index(keyword)
        except ValueError:
            return None

        if index == len(tokens) - 1:
            return None

        token = tokens[index + 1]
        if not _NUMBER_PATTERN.fullmatch(token):
            return None
        return float(token)


_default_resolver = ParameterResolver()


def resolve_parameters(text: str, current: SpeechParameters) -> SpeechParameters:
    """Resolve ``text`` with a shared stateless resolver."""
    return _default_resolver.resolve(text, current)
