from __future__ import annotations

from bisect import insort


class VoiceIndexer:
    def __init__(self) -> None:
        # Sorted voice indices per (part, staff); ordinals are 1-based ranks.
        self._voices: dict[tuple[int, int], list[int]] = {}

    def register(self, part_index: int, staff_index: int, voice_index: int) -> None:
        voices = self._voices.setdefault((part_index, staff_index), [])
        if voice_index not in voices:
            insort(voices, voice_index)

    def ordinal_for(self, part_index: int, staff_index: int, voice_index: int) -> int:
        self.register(part_index, staff_index, voice_index)
        return self._voices[(part_index, staff_index)].index(voice_index) + 1

    def voices_of(self, part_index: int, staff_index: int) -> list[int]:
        return list(self._voices.get((part_index, staff_index), []))
