from __future__ import annotations

from app.models import NoteOccurrence, PatternOccurrence, PatternSearchResult


class OccurrenceReporter:
    def __init__(self) -> None:
        self._exact: list[PatternOccurrence] = []
        self._approximate: list[PatternOccurrence] = []

    def record(self, notes: list[NoteOccurrence], matched_count: int, *, exact: bool) -> PatternOccurrence:
        bucket = self._exact if exact else self._approximate
        occurrence = PatternOccurrence(
            occurrence_number=len(bucket) + 1,
            notes=list(notes),
            matched_count=matched_count,
        )
        bucket.append(occurrence)
        return occurrence

    @property
    def exact_count(self) -> int:
        return len(self._exact)

    @property
    def approximate_count(self) -> int:
        return len(self._approximate)

    def result(self) -> PatternSearchResult:
        return PatternSearchResult(
            exact_pattern_occurrences=list(self._exact),
            approximate_pattern_occurrences=list(self._approximate),
        )
