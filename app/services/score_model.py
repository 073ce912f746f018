from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from xml.etree import ElementTree

from pydantic import ValidationError

from app.logging_utils import log_event
from app.models import NoteEvent, Pitch
from app.services.coordinate_resolver import measure_positions

logger = logging.getLogger(__name__)

_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


class MalformedScore(ValueError):
    pass


@dataclass(frozen=True)
class ScorePart:
    part_id: str
    staff_count: int
    notes: tuple[NoteEvent, ...]

    @property
    def staff_span(self) -> int:
        used = max((n.staff_index for n in self.notes), default=1)
        return max(self.staff_count, used)


class ScoreModel:
    def __init__(self, parts: list[ScorePart]):
        self._parts = tuple(parts)

    @property
    def parts(self) -> tuple[ScorePart, ...]:
        return self._parts

    def part_count(self) -> int:
        return len(self._parts)

    def notes_of(self, part_index: int) -> tuple[NoteEvent, ...]:
        return self._parts[part_index].notes

    def staff_count_declared(self, part_index: int) -> int:
        return self._parts[part_index].staff_count

    def note_count(self) -> int:
        return sum(len(part.notes) for part in self._parts)


def load_musicxml(content: str | bytes) -> ElementTree.Element:
    try:
        return ElementTree.fromstring(content)
    except ElementTree.ParseError as exc:
        raise MalformedScore(f"Score is not well-formed XML: {exc}") from exc


def build_score_model(document: ElementTree.ElementTree | ElementTree.Element) -> ScoreModel:
    root = document.getroot() if isinstance(document, ElementTree.ElementTree) else document
    part_elements = [root] if root.tag == "part" else list(root.iter("part"))
    parts = [_build_part(part_el, idx) for idx, part_el in enumerate(part_elements)]
    model = ScoreModel(parts)
    log_event(logger, "score_model_built", part_count=model.part_count(), note_count=model.note_count())
    return model


def _build_part(part_el: ElementTree.Element, part_index: int) -> ScorePart:
    part_id = part_el.get("id", "")
    notes: list[NoteEvent] = []
    for ordinal, measure_el in enumerate(part_el.iter("measure"), start=1):
        notes.extend(_measure_notes(measure_el, part_index, part_id, ordinal))

    if not notes:
        raise MalformedScore(f"Part {part_id or part_index} declares no notes.")

    staves_el = part_el.find(".//staves")
    staff_count = 1
    if staves_el is not None:
        staff_count = _parse_int(staves_el.text, f"staves of part {part_id or part_index}")
        if staff_count < 1:
            raise MalformedScore(f"Part {part_id or part_index} declares {staff_count} staves.")
    return ScorePart(part_id=part_id, staff_count=staff_count, notes=tuple(notes))


def _measure_notes(
    measure_el: ElementTree.Element, part_index: int, part_id: str, ordinal: int
) -> list[NoteEvent]:
    note_els = measure_el.findall("note")
    if not note_els:
        return []

    measure_number = _measure_number(measure_el.get("number"), ordinal)

    where = f"part {part_id or part_index} measure {measure_number}"
    lane_keys = [
        (_optional_index(note_el, "staff", where), _optional_index(note_el, "voice", where))
        for note_el in note_els
    ]
    positions = measure_positions(lane_keys)

    events: list[NoteEvent] = []
    for note_el, (staff_index, voice_index), position in zip(note_els, lane_keys, positions):
        is_rest = note_el.find("rest") is not None
        pitch_el = note_el.find("pitch")
        pitch = None if is_rest or pitch_el is None else _parse_pitch(pitch_el, where)
        events.append(
            NoteEvent(
                pitch=pitch,
                is_rest=is_rest,
                part_index=part_index,
                part_id=part_id,
                staff_index=staff_index,
                voice_index=voice_index,
                measure_number=measure_number,
                position_in_measure=position,
            )
        )
    return events


def _measure_number(raw: str | None, ordinal: int) -> int:
    # Implicit and split measures carry labels like "X1" or "12a".
    match = _LEADING_INT_RE.match(raw or "")
    return int(match.group(1)) if match else ordinal


def _parse_pitch(pitch_el: ElementTree.Element, where: str) -> Pitch:
    step = _child_text(pitch_el, "step")
    if step is None:
        raise MalformedScore(f"Pitch without step in {where}.")
    alter_text = _child_text(pitch_el, "alter")
    octave_text = _child_text(pitch_el, "octave")
    try:
        return Pitch(
            step=step,
            alter=_parse_alter(alter_text, where) if alter_text is not None else None,
            octave=_parse_int(octave_text, f"octave in {where}") if octave_text is not None else None,
        )
    except ValidationError as exc:
        raise MalformedScore(f"Invalid pitch step {step!r} in {where}.") from exc


def _parse_alter(text: str, where: str) -> int | float:
    try:
        value = float(text)
    except ValueError as exc:
        raise MalformedScore(f"Non-numeric alter {text!r} in {where}.") from exc
    return int(value) if value.is_integer() else value


def _optional_index(note_el: ElementTree.Element, tag: str, where: str) -> int:
    text = _child_text(note_el, tag)
    if text is None:
        return 1
    value = _parse_int(text, f"{tag} in {where}")
    if value < 1:
        raise MalformedScore(f"{tag} must be >= 1 in {where}, got {value}.")
    return value


def _child_text(element: ElementTree.Element, tag: str) -> str | None:
    child = element.find(tag)
    if child is None or child.text is None or not child.text.strip():
        return None
    return child.text.strip()


def _parse_int(text: str | None, what: str) -> int:
    try:
        return int(str(text).strip())
    except ValueError as exc:
        raise MalformedScore(f"Expected an integer for {what}, got {text!r}.") from exc
