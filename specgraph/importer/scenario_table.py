"""Build a scenario graph from a semi-structured spreadsheet table.

The input is a rectangular table of cell text, exactly as read from the
sheet (title rows, header rows and notes included). The importer locates
the step table, reads one step per numbered row, infers the step types and
derives transitions from "go to step N" phrases in the row text. When the
table mentions no transitions at all, steps are chained in order.

Import fails fast with a :class:`ScenarioImportError`; no partial graph is
ever returned.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from specgraph.importer.patterns import DEFAULT_PATTERNS, ScenarioPatterns
from specgraph.importer.transitions import extract_transitions
from specgraph.models.graph_snapshot import (
    GraphSnapshot,
    Position,
    Step,
    StepType,
    Transition,
)
from specgraph.utils.step_keys import numeric_key

logger = logging.getLogger(__name__)

Row = Sequence[object]


class ImportFailure(str, Enum):
    """Reasons a scenario import is rejected."""

    no_header_found = "no_header_found"
    missing_required_columns = "missing_required_columns"
    no_steps_found = "no_steps_found"
    empty_sheet = "empty_sheet"
    unsupported_file = "unsupported_file"


_MESSAGES = {
    ImportFailure.no_header_found: "Could not find the scenario step table in the sheet",
    ImportFailure.missing_required_columns: 'The step table has no "№" and/or "scenario step" column',
    ImportFailure.no_steps_found: "The step table contains no numbered steps",
    ImportFailure.empty_sheet: "The sheet is empty",
    ImportFailure.unsupported_file: "Unsupported file type",
}


class ScenarioImportError(Exception):
    """Raised when a table cannot be turned into a scenario graph."""

    def __init__(self, reason: ImportFailure, message: str | None = None) -> None:
        self.reason = reason
        self.message = message or _MESSAGES[reason]
        super().__init__(self.message)


@dataclass(frozen=True)
class ScenarioColumns:
    """Column indices of the step table; None when the column is absent."""

    number: int
    title: int
    description: int | None = None
    criterion: int | None = None
    errors: int | None = None
    developer_note: int | None = None


@dataclass
class ScenarioRow:
    """One numbered row of the step table."""

    key: str
    title: str
    description: str
    row_index: int
    raw_description: str = ""
    raw_criterion: str = ""
    raw_developer_note: str = ""

    @property
    def mining_text(self) -> str:
        """Row text scanned for step references."""
        parts = (self.raw_description, self.raw_criterion, self.raw_developer_note)
        return "\n".join(part for part in parts if part)


def _cell(row: Row, index: int | None) -> str:
    if index is None or index >= len(row) or row[index] is None:
        return ""
    return str(row[index])


def _lowered(row: Row) -> list[str]:
    return [str(cell).lower() if cell is not None else "" for cell in row]


def locate_header_row(rows: Sequence[Row], patterns: ScenarioPatterns = DEFAULT_PATTERNS) -> int:
    """Return the index of the step table's header row.

    The row after a section marker ("ТАБЛИЧНОЕ ОПИСАНИЕ ШАГОВ СЦЕНАРИЯ") wins.
    Otherwise the first row whose first cell is a number marker and which
    also names the title column is used.
    """
    for index, row in enumerate(rows):
        cells = _lowered(row)
        if any(marker in cell for cell in cells for marker in patterns.section_markers):
            return index + 1

    for index, row in enumerate(rows):
        if not row:
            continue
        cells = _lowered(row)
        if cells[0].strip() in patterns.number_markers and any(
            phrase in cell for cell in cells for phrase in patterns.title_columns
        ):
            return index

    raise ScenarioImportError(ImportFailure.no_header_found)


def resolve_columns(header: Row, patterns: ScenarioPatterns = DEFAULT_PATTERNS) -> ScenarioColumns:
    """Resolve the step table's column indices from its header row."""
    cells = _lowered(header)

    def find(phrases: tuple[str, ...]) -> int | None:
        for index, cell in enumerate(cells):
            if any(phrase in cell for phrase in phrases):
                return index
        return None

    number = next(
        (index for index, cell in enumerate(cells) if patterns.is_number_header(cell)),
        None,
    )
    title = find(patterns.title_columns)
    if number is None or title is None:
        raise ScenarioImportError(ImportFailure.missing_required_columns)

    return ScenarioColumns(
        number=number,
        title=title,
        description=find(patterns.description_columns),
        criterion=find(patterns.criterion_columns),
        errors=find(patterns.error_columns),
        developer_note=find(patterns.developer_note_columns),
    )


def extract_rows(
    rows: Sequence[Row],
    header_index: int,
    columns: ScenarioColumns,
    patterns: ScenarioPatterns = DEFAULT_PATTERNS,
) -> list[ScenarioRow]:
    """Read the numbered rows below the header.

    Rows without a digit in the number cell (blank lines, sub-headings,
    notes) are skipped. A repeated step number keeps its first row.
    """
    extracted: list[ScenarioRow] = []
    seen: set[str] = set()

    for index in range(header_index + 1, len(rows)):
        row = rows[index]
        if not row:
            continue

        key = _cell(row, columns.number).strip()
        if not key or not any(char.isdigit() for char in key):
            continue
        if key in seen:
            logger.warning("skipping row %d: duplicate step number %r", index + 1, key)
            continue
        seen.add(key)

        title = _cell(row, columns.title).strip() or patterns.step_title_template.format(key=key)

        raw_description = _cell(row, columns.description)
        raw_criterion = _cell(row, columns.criterion)
        raw_errors = _cell(row, columns.errors)
        raw_developer_note = _cell(row, columns.developer_note)

        parts = [raw_description.strip()]
        if raw_criterion.strip():
            parts.append(patterns.criterion_prefix + raw_criterion.strip())
        if raw_errors.strip():
            parts.append(patterns.error_prefix + raw_errors.strip())

        extracted.append(
            ScenarioRow(
                key=key,
                title=title,
                description="\n\n".join(part for part in parts if part),
                row_index=index,
                raw_description=raw_description,
                raw_criterion=raw_criterion,
                raw_developer_note=raw_developer_note,
            )
        )

    if not extracted:
        raise ScenarioImportError(ImportFailure.no_steps_found)
    return extracted


def order_rows(rows: list[ScenarioRow]) -> list[ScenarioRow]:
    """Sort rows by step number.

    Numeric keys ("1", "2.1", "3,5") come first in numeric order, ties by row
    position. Keys without a numeric reading follow in table order.
    """

    def sort_key(row: ScenarioRow) -> tuple:
        number = numeric_key(row.key)
        if number is None:
            return (1, 0.0, row.row_index)
        return (0, number, row.row_index)

    return sorted(rows, key=sort_key)


def infer_step_type(
    position: int,
    count: int,
    title: str,
    patterns: ScenarioPatterns = DEFAULT_PATTERNS,
) -> StepType:
    """First step starts, last step ends, checks are conditions."""
    if position == 0:
        return StepType.start
    if position == count - 1:
        return StepType.end
    if patterns.is_condition_title(title):
        return StepType.condition
    return StepType.action


def synthesize_transitions(
    ordered: list[ScenarioRow],
    patterns: ScenarioPatterns = DEFAULT_PATTERNS,
) -> tuple[list[Transition], list[str]]:
    """Derive the transitions of the ordered steps.

    Returns the transitions and the keys of referenced steps that have no
    row of their own (the caller adds placeholder steps for them).

    Without any textual reference in the table the steps form a linear
    chain. Otherwise the references are used as written, and only steps
    without references of their own get an edge to the next step.
    """
    known = {row.key for row in ordered}
    missing: list[str] = []
    explicit: list[Transition] = []
    outgoing: dict[str, list[str]] = {}

    for row in ordered:
        candidates = extract_transitions(row.mining_text, patterns)
        if not candidates:
            continue

        targets = outgoing.setdefault(row.key, [])
        for candidate in candidates:
            if candidate.target_key not in known:
                known.add(candidate.target_key)
                missing.append(candidate.target_key)
            if candidate.target_key in targets:
                continue
            targets.append(candidate.target_key)
            explicit.append(
                Transition(
                    from_key=row.key,
                    to_key=candidate.target_key,
                    label=candidate.label or None,
                )
            )

    consecutive = list(zip(ordered, ordered[1:]))
    if not explicit:
        chain = [Transition(from_key=a.key, to_key=b.key) for a, b in consecutive]
        return chain, missing

    linked = {(t.from_key, t.to_key) for t in explicit}
    fallback = [
        Transition(from_key=a.key, to_key=b.key)
        for a, b in consecutive
        if a.key not in outgoing and (a.key, b.key) not in linked
    ]
    return explicit + fallback, missing


def import_scenario(
    rows: Sequence[Row],
    patterns: ScenarioPatterns = DEFAULT_PATTERNS,
) -> GraphSnapshot:
    """Turn a scenario table into a graph snapshot.

    Args:
        rows: the sheet as a sequence of rows of cell text, header rows included
        patterns: phrase tables; defaults cover Russian and English tables

    Raises:
        ScenarioImportError: when no step table, required column or step is found
    """
    header_index = locate_header_row(rows, patterns)
    if header_index >= len(rows):
        raise ScenarioImportError(ImportFailure.no_header_found)

    columns = resolve_columns(rows[header_index], patterns)
    ordered = order_rows(extract_rows(rows, header_index, columns, patterns))

    steps = [
        Step(
            key=row.key,
            type=infer_step_type(index, len(ordered), row.title, patterns),
            title=row.title,
            description=row.description,
            position=Position(x=100 + index * 60, y=80 + index * 30),
        )
        for index, row in enumerate(ordered)
    ]

    transitions, missing = synthesize_transitions(ordered, patterns)
    for key in missing:
        steps.append(
            Step(
                key=key,
                type=StepType.action,
                title=patterns.step_title_template.format(key=key),
                description="",
                position=Position(x=400, y=80 + len(steps) * 30),
            )
        )

    logger.info(
        "imported scenario: %d steps (%d placeholders), %d transitions",
        len(steps),
        len(missing),
        len(transitions),
    )
    return GraphSnapshot(steps=steps, transitions=transitions)
