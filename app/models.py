from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


Step = Literal["A", "B", "C", "D", "E", "F", "G"]
Alter = int | float

MAX_PATTERN_LENGTH = 64


class Pitch(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: Step
    alter: Alter | None = None
    octave: int | None = None

    @field_validator("step", mode="before")
    @classmethod
    def normalize_step(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value

    def matches(self, other: Pitch | None) -> bool:
        return pitches_equal(self, other)


def pitches_equal(first: Pitch | None, second: Pitch | None) -> bool:
    """Step and alteration equality; octave is ignored and an absent alter never equals a present one."""
    if first is None or second is None:
        return False
    if first.step != second.step:
        return False
    if first.alter is None or second.alter is None:
        return first.alter is None and second.alter is None
    return first.alter == second.alter


class NoteEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    pitch: Pitch | None = None
    is_rest: bool = False
    part_index: int = Field(ge=0)
    part_id: str = ""
    staff_index: int = Field(default=1, ge=1)
    voice_index: int = Field(default=1, ge=1)
    staff_voice_ordinal: int | None = Field(default=None, ge=1)
    measure_number: int
    position_in_measure: int = Field(ge=0)

    @property
    def lane_key(self) -> tuple[int, int]:
        return self.staff_index, self.voice_index


class NoteOccurrence(BaseModel):
    staff_coordinate: int = Field(ge=1)
    measure_number: int
    position_in_measure: int = Field(ge=0)
    staff_voice_ordinal: int = Field(ge=1)
    note: NoteEvent


class PatternOccurrence(BaseModel):
    occurrence_number: int = Field(ge=1)
    notes: list[NoteOccurrence]
    matched_count: int = Field(ge=0)


class PatternSearchResult(BaseModel):
    exact_pattern_occurrences: list[PatternOccurrence] = Field(default_factory=list)
    approximate_pattern_occurrences: list[PatternOccurrence] = Field(default_factory=list)


class HighlightInstruction(BaseModel):
    occurrence_number: int = Field(ge=1)
    exact: bool
    staff_coordinate: int = Field(ge=1)
    measure_number: int
    staff_voice_ordinal: int = Field(ge=1)
    position_in_measure: int = Field(ge=0)
    color: str


class PatternSearchRequest(BaseModel):
    musicxml: str = Field(min_length=1)
    pattern: list[Pitch | str] = Field(max_length=MAX_PATTERN_LENGTH)
    approximate_ratio: float = Field(default=0.6, ge=0, lt=1)


class PatternSearchResponse(BaseModel):
    exact_pattern_occurrences: list[PatternOccurrence]
    approximate_pattern_occurrences: list[PatternOccurrence]
    highlights: list[HighlightInstruction] = Field(default_factory=list)


class PaletteResponse(BaseModel):
    exact: list[str]
    approximate: list[str]
