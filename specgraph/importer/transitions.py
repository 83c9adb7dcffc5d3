"""Extraction of textual step references such as "переход к шагу 3".

Authors describe branching in prose: "If the card is blocked, go to step 7".
Each reference becomes a candidate transition whose label is the text that
precedes it.
"""

import re
from dataclasses import dataclass

from specgraph.importer.patterns import DEFAULT_PATTERNS, ScenarioPatterns

# trailing punctuation stripped from a label
_LABEL_TAIL = re.compile(r"[\s.,;:\-]+$")


@dataclass(frozen=True)
class TransitionCandidate:
    """A reference to another step found in free text."""

    target_key: str
    label: str


def _label_before(text: str, match_start: int, patterns: ScenarioPatterns) -> str:
    """Build a label from the text immediately preceding a match."""
    context_start = max(0, match_start - patterns.label_context_chars)
    context = text[context_start:match_start].strip()
    context = _LABEL_TAIL.sub("", context).strip()
    if len(context) > patterns.label_max_chars:
        context = patterns.ellipsis + context[-patterns.label_max_chars:]
    return context


def extract_transitions(
    text: str | None,
    patterns: ScenarioPatterns = DEFAULT_PATTERNS,
) -> list[TransitionCandidate]:
    """Find every step reference in ``text``, in order of appearance.

    Matches are case-insensitive and non-overlapping. Duplicates are kept;
    deduplication is the caller's concern.
    """
    if not text:
        return []

    text = str(text)
    return [
        TransitionCandidate(
            target_key=match.group(1),
            label=_label_before(text, match.start(), patterns),
        )
        for match in patterns.transition_regex.finditer(text)
    ]
