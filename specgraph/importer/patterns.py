"""Pattern tables for reading scenario spreadsheets.

Scenario tables are written by hand, so the importer relies on phrase
heuristics to find the step table, its columns and the free-text
"go to step N" references. The phrases live here rather than in the
algorithm; add an alternate phrasing by extending a tuple (or by passing a
customised ``ScenarioPatterns`` to the importer).

All phrase matching is case-insensitive. Phrases are stored lower-case.
"""

import re
from functools import lru_cache

from pydantic import BaseModel


@lru_cache(maxsize=32)
def _compile_transitions(phrases: tuple[str, ...]) -> re.Pattern:
    """One alternation over all transition phrases capturing the step number."""
    alternatives = "|".join(f"(?:{phrase})" for phrase in phrases)
    return re.compile(rf"(?:{alternatives})\s+(\d+)", re.IGNORECASE)


@lru_cache(maxsize=32)
def _compile_keywords(keywords: tuple[str, ...]) -> re.Pattern:
    """Whole-word match of any keyword, so "check" does not hit "checkout"."""
    alternatives = "|".join(re.escape(keyword) for keyword in keywords)
    return re.compile(rf"(?<!\w)(?:{alternatives})(?!\w)", re.IGNORECASE)


class ScenarioPatterns(BaseModel):
    """Phrase tables and templates used by the scenario importer."""

    model_config = {"frozen": True}

    # a row containing one of these introduces the step table; the next row is its header
    section_markers: tuple[str, ...] = (
        "табличное описание шагов сценария",
        "tabular description of scenario steps",
    )
    # first header cell of the step table ("№" column)
    number_markers: tuple[str, ...] = ("№", "no", "no.", "n", "#")

    # header cell phrases, matched as substrings
    title_columns: tuple[str, ...] = ("шаг сценария", "scenario step")
    description_columns: tuple[str, ...] = ("описание шага", "step description")
    criterion_columns: tuple[str, ...] = ("критерий успешности", "success criterion")
    error_columns: tuple[str, ...] = ("обработка ошибок", "error handling")
    developer_note_columns: tuple[str, ...] = (
        "примечание для разработчика",
        "developer note",
    )

    # a step whose title contains one of these words is a condition
    condition_keywords: tuple[str, ...] = ("проверка", "проверяется", "verification", "check")

    # regex prefixes of a textual transition; whitespace and the step number follow
    transition_phrases: tuple[str, ...] = (r"переход к шаг[ау]", r"transition to step")

    # preferred sheet, by name fragment
    sheet_hints: tuple[str, ...] = ("сценар", "scenario")

    step_title_template: str = "Шаг {key}"
    criterion_prefix: str = "Критерий: "
    error_prefix: str = "Ошибки: "

    label_context_chars: int = 80
    label_max_chars: int = 60
    ellipsis: str = "…"

    @property
    def transition_regex(self) -> re.Pattern:
        return _compile_transitions(self.transition_phrases)

    def is_number_header(self, cell: str) -> bool:
        cell = cell.strip().lower()
        return cell in self.number_markers or cell.startswith("№")

    def is_condition_title(self, title: str) -> bool:
        if not self.condition_keywords:
            return False
        return _compile_keywords(self.condition_keywords).search(title) is not None


DEFAULT_PATTERNS = ScenarioPatterns()
