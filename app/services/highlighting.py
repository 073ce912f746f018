from __future__ import annotations

from collections.abc import Sequence

from app.models import HighlightInstruction, PatternOccurrence, PatternSearchResult

# Material Design palette, cycled by occurrence number.
MATERIAL_COLORS: tuple[str, ...] = (
    "#F44336",
    "#E91E63",
    "#9C27B0",
    "#673AB7",
    "#3F51B5",
    "#2196F3",
    "#03A9F4",
    "#00BCD4",
    "#009688",
    "#4CAF50",
    "#8BC34A",
    "#CDDC39",
    "#FFEB3B",
    "#FFC107",
    "#FF9800",
    "#FF5722",
)
APPROXIMATE_ALPHA = "55"


def translucent(palette: Sequence[str], alpha: str = APPROXIMATE_ALPHA) -> list[str]:
    return [f"{color}{alpha}" for color in palette]


def occurrence_color(occurrence_number: int, palette: Sequence[str]) -> str:
    if not palette:
        raise ValueError("Highlight palette must contain at least one color.")
    return palette[(occurrence_number - 1) % len(palette)]


def highlight_plan(result: PatternSearchResult, palette: Sequence[str] = MATERIAL_COLORS) -> list[HighlightInstruction]:
    if not palette:
        raise ValueError("Highlight palette must contain at least one color.")
    instructions = _occurrence_highlights(result.exact_pattern_occurrences, palette, exact=True)
    instructions.extend(
        _occurrence_highlights(result.approximate_pattern_occurrences, translucent(palette), exact=False)
    )
    return instructions


def _occurrence_highlights(
    occurrences: list[PatternOccurrence], palette: Sequence[str], *, exact: bool
) -> list[HighlightInstruction]:
    out: list[HighlightInstruction] = []
    for occurrence in occurrences:
        color = occurrence_color(occurrence.occurrence_number, palette)
        for note in occurrence.notes:
            out.append(
                HighlightInstruction(
                    occurrence_number=occurrence.occurrence_number,
                    exact=exact,
                    staff_coordinate=note.staff_coordinate,
                    measure_number=note.measure_number,
                    staff_voice_ordinal=note.staff_voice_ordinal,
                    position_in_measure=note.position_in_measure,
                    color=color,
                )
            )
    return out
