from __future__ import annotations

import re

from pydantic import ValidationError

from app.models import Pitch

ACCIDENTAL_TO_ALTER = {
    "": None,
    "#": 1,
    "##": 2,
    "x": 2,
    "b": -1,
    "bb": -2,
    "-": -1,
    "--": -2,
}
ALTER_TO_ACCIDENTAL = {1: "#", 2: "##", -1: "b", -2: "bb", 0: "n"}

_PITCH_NAME_RE = re.compile(r"([A-Ga-g])(##|#|x|bb|b|--|-|n)?(-?\d+)?")


def parse_pitch_name(name: str) -> Pitch:
    cleaned = name.strip()
    m = _PITCH_NAME_RE.fullmatch(cleaned)
    if not m:
        raise ValueError(f"Invalid pitch name {name!r}. Use forms like C, Bb, F#4.")
    accidental = m.group(2) or ""
    alter = 0 if accidental == "n" else ACCIDENTAL_TO_ALTER[accidental]
    octave = int(m.group(3)) if m.group(3) is not None else None
    try:
        return Pitch(step=m.group(1), alter=alter, octave=octave)
    except ValidationError as exc:
        raise ValueError(f"Invalid pitch name {name!r}.") from exc


def pitch_name(pitch: Pitch | None) -> str:
    if pitch is None:
        return "REST"
    if pitch.alter is None:
        accidental = ""
    else:
        accidental = ALTER_TO_ACCIDENTAL.get(pitch.alter, f"({pitch.alter:+g})")
    octave = "" if pitch.octave is None else str(pitch.octave)
    return f"{pitch.step}{accidental}{octave}"


def pattern_label(pattern: list[Pitch]) -> str:
    return " ".join(pitch_name(p) for p in pattern)
