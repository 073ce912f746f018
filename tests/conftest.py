from types import SimpleNamespace
from xml.etree import ElementTree

import pytest

from app.services.music_theory import parse_pitch_name

BACKUP = "<backup><duration>4</duration></backup>"


def note(name: str | None, staff: int | None = None, voice: int | None = None) -> str:
    """A pitched note such as ``Bb4``; ``None`` gives a rest."""
    parts = ["<note>"]
    if name is None:
        parts.append("<rest/>")
    else:
        pitch = parse_pitch_name(name)
        parts.append(f"<pitch><step>{pitch.step}</step>")
        if pitch.alter is not None:
            parts.append(f"<alter>{pitch.alter}</alter>")
        parts.append(f"<octave>{4 if pitch.octave is None else pitch.octave}</octave></pitch>")
    parts.append("<duration>1</duration>")
    if voice is not None:
        parts.append(f"<voice>{voice}</voice>")
    if staff is not None:
        parts.append(f"<staff>{staff}</staff>")
    parts.append("</note>")
    return "".join(parts)


def voice_notes(names: list[str | None], staff: int | None = None, voice: int | None = None) -> list[str]:
    return [note(name, staff=staff, voice=voice) for name in names]


def measure(number: int | str, notes: list[str], staves: int | None = None) -> str:
    attributes = ""
    if staves is not None:
        attributes = f"<attributes><divisions>1</divisions><staves>{staves}</staves></attributes>"
    return f'<measure number="{number}">{attributes}{"".join(notes)}</measure>'


def part(part_id: str, measures: list[str]) -> str:
    return f'<part id="{part_id}">{"".join(measures)}</part>'


def score(*parts: str) -> str:
    part_list = "".join(
        f'<score-part id="P{idx}"><part-name>Part {idx}</part-name></score-part>'
        for idx in range(1, len(parts) + 1)
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<score-partwise version="3.1"><part-list>{part_list}</part-list>{"".join(parts)}</score-partwise>'
    )


def melody(names: list[str | None], part_id: str = "P1") -> str:
    return score(part(part_id, [measure(1, voice_notes(names))]))


def document(xml: str) -> ElementTree.Element:
    return ElementTree.fromstring(xml.encode("utf-8"))


@pytest.fixture
def musicxml():
    return SimpleNamespace(
        note=note,
        voice_notes=voice_notes,
        backup=BACKUP,
        measure=measure,
        part=part,
        score=score,
        melody=melody,
        document=document,
    )
