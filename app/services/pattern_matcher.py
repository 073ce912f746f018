from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal
from xml.etree import ElementTree

from pydantic import ValidationError

from app.logging_utils import log_event, new_run_id
from app.models import NoteEvent, PatternSearchResult, Pitch, pitches_equal
from app.services.coordinate_resolver import resolve_note_occurrence, staff_offsets
from app.services.music_theory import pattern_label, parse_pitch_name
from app.services.occurrence_reporter import OccurrenceReporter
from app.services.score_model import MalformedScore, ScoreModel, build_score_model
from app.services.voice_indexer import VoiceIndexer

logger = logging.getLogger(__name__)

MatchKind = Literal["exact", "approximate"]
PatternInput = Sequence[Pitch | Mapping[str, Any] | str]


class InvalidPattern(ValueError):
    pass


@dataclass(frozen=True)
class MatchOptions:
    approximate_ratio: float = 0.6


DEFAULT_MATCH_OPTIONS = MatchOptions()


def coerce_pattern(pattern: PatternInput | None) -> list[Pitch]:
    if isinstance(pattern, str):
        raise InvalidPattern(f"Pattern must be a list of pitches, not the string {pattern!r}.")
    if not pattern:
        raise InvalidPattern("Pattern must contain at least one pitch.")
    pitches: list[Pitch] = []
    for idx, item in enumerate(pattern):
        if isinstance(item, Pitch):
            pitches.append(item)
            continue
        try:
            if isinstance(item, str):
                pitch = parse_pitch_name(item)
            elif isinstance(item, Mapping):
                pitch = Pitch(**item)
            else:
                raise TypeError(f"unsupported type {type(item).__name__}")
        except (ValidationError, ValueError, TypeError) as exc:
            raise InvalidPattern(f"Pattern entry {idx} is not a valid pitch: {item!r}.") from exc
        pitches.append(pitch)
    return pitches


def find_pattern(
    document: ElementTree.ElementTree | ElementTree.Element,
    pattern: PatternInput,
    options: MatchOptions = DEFAULT_MATCH_OPTIONS,
) -> PatternSearchResult:
    try:
        pitches = coerce_pattern(pattern)
        model = build_score_model(document)
    except (InvalidPattern, MalformedScore) as exc:
        log_event(logger, "pattern_search_failed", level=logging.WARNING, error_type=type(exc).__name__, reason=str(exc))
        raise
    return find_pattern_in_model(model, pitches, options)


def find_pattern_in_model(
    model: ScoreModel,
    pattern: PatternInput,
    options: MatchOptions = DEFAULT_MATCH_OPTIONS,
) -> PatternSearchResult:
    pitches = coerce_pattern(pattern)
    run_id = new_run_id()
    indexer = VoiceIndexer()
    reporter = OccurrenceReporter()
    offsets = staff_offsets(model)
    log_event(
        logger,
        "pattern_search_started",
        run_id=run_id,
        pattern=pattern_label(pitches),
        pattern_length=len(pitches),
        part_count=model.part_count(),
    )

    for part_index in range(model.part_count()):
        for note in model.notes_of(part_index):
            indexer.register(part_index, note.staff_index, note.voice_index)

        for lane in voice_lanes(model, part_index, indexer):
            log_event(
                logger,
                "pattern_lane_scanned",
                level=logging.DEBUG,
                run_id=run_id,
                part_index=part_index,
                staff_index=lane[0].staff_index,
                voice_index=lane[0].voice_index,
                lane_length=len(lane),
            )
            for start in range(len(lane)):
                matched = align_pattern(lane, start, pitches)
                count = matched_count(matched, pitches)
                kind = classify_match(count, len(pitches), options)
                if kind is None:
                    continue
                reporter.record(
                    [resolve_note_occurrence(note, offsets[part_index], indexer) for note in matched],
                    count,
                    exact=kind == "exact",
                )

    log_event(
        logger,
        "pattern_search_completed",
        run_id=run_id,
        exact_count=reporter.exact_count,
        approximate_count=reporter.approximate_count,
    )
    return reporter.result()


def voice_lanes(model: ScoreModel, part_index: int, indexer: VoiceIndexer) -> list[list[NoteEvent]]:
    sounding = [note for note in model.notes_of(part_index) if not note.is_rest]
    if not sounding:
        return []
    if model.staff_count_declared(part_index) == 1:
        return [sounding]

    lanes: dict[tuple[int, int], list[NoteEvent]] = defaultdict(list)
    for note in sounding:
        lanes[note.lane_key].append(note)
    order = sorted(lanes, key=lambda key: (key[0], indexer.ordinal_for(part_index, *key)))
    return [lanes[key] for key in order]


def align_pattern(lane: Sequence[NoteEvent], start: int, pattern: Sequence[Pitch]) -> list[NoteEvent]:
    # Slot j of the pattern only ever compares against lane[start + j].
    matched: list[NoteEvent] = []
    for offset, required in enumerate(pattern):
        index = start + offset
        if index >= len(lane):
            break
        candidate = lane[index]
        if not pitches_equal(candidate.pitch, required):
            continue
        if matched and not _continues_lane(matched[-1], candidate):
            continue
        matched.append(candidate)
    return matched


def _continues_lane(previous: NoteEvent, candidate: NoteEvent) -> bool:
    # Voice reassignment at beat boundaries can move a doubled note into the next voice.
    return candidate.lane_key == previous.lane_key or pitches_equal(candidate.pitch, previous.pitch)


def matched_count(notes: Sequence[NoteEvent], pattern: Sequence[Pitch]) -> int:
    remaining = list(pattern)
    count = 0
    for note in notes:
        for idx, required in enumerate(remaining):
            if pitches_equal(note.pitch, required):
                del remaining[idx]
                count += 1
                break
    return count


def classify_match(count: int, pattern_length: int, options: MatchOptions = DEFAULT_MATCH_OPTIONS) -> MatchKind | None:
    if pattern_length < 1:
        raise InvalidPattern("Pattern must contain at least one pitch.")
    if count == pattern_length:
        return "exact"
    if 0 < count < pattern_length and count / pattern_length > options.approximate_ratio:
        return "approximate"
    return None
