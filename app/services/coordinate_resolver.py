from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Iterable

from app.models import NoteEvent, NoteOccurrence

if TYPE_CHECKING:
    from app.services.score_model import ScoreModel
    from app.services.voice_indexer import VoiceIndexer


def measure_positions(lane_keys: Iterable[tuple[int, int]]) -> list[int]:
    seen: dict[tuple[int, int], int] = defaultdict(int)
    positions: list[int] = []
    for key in lane_keys:
        positions.append(seen[key])
        seen[key] += 1
    return positions


def staff_offsets(model: ScoreModel) -> list[int]:
    offsets: list[int] = []
    running = 0
    for part in model.parts:
        offsets.append(running)
        running += part.staff_span
    return offsets


def resolve_note_occurrence(note: NoteEvent, staff_offset: int, indexer: VoiceIndexer) -> NoteOccurrence:
    ordinal = indexer.ordinal_for(note.part_index, note.staff_index, note.voice_index)
    stamped = note.model_copy(update={"staff_voice_ordinal": ordinal})
    return NoteOccurrence(
        staff_coordinate=staff_offset + note.staff_index,
        measure_number=note.measure_number,
        position_in_measure=note.position_in_measure,
        staff_voice_ordinal=ordinal,
        note=stamped,
    )
