from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, Optional

from .extra_params import NoteExtraParams

if TYPE_CHECKING:
    from .bar import Bar

# 0 is registered in every document and means "no note"
INVALID_ID = 0


class NoteType(IntEnum):
    INVALID = 0
    TAP_OR_FLICK = 1
    HOLD = 2
    SLIDE = 3
    # Special (non-gameplay) notes start at 100
    VARIANT_BPM = 100


class FlickType(IntEnum):
    NONE = 0
    LEFT = 1
    RIGHT = 2


class NotePosition(IntEnum):
    NOWHERE = 0
    LEFT = 1
    CENTER_LEFT = 2
    CENTER = 3
    CENTER_RIGHT = 4
    RIGHT = 5


@dataclass(kw_only=True, eq=False)
class Note:
    id: int
    index_in_grid: int = 0
    start_position: NotePosition = NotePosition.NOWHERE
    finish_position: NotePosition = NotePosition.NOWHERE
    type: NoteType = NoteType.TAP_OR_FLICK
    flick_type: FlickType = FlickType.NONE
    prev_flick_or_slide_note_id: int = INVALID_ID
    next_flick_or_slide_note_id: int = INVALID_ID
    hold_target_id: int = INVALID_ID
    extra_params: Optional[NoteExtraParams] = None
    is_sync: bool = False
    bar: Optional["Bar"] = field(default=None, repr=False)

    @property
    def is_gaming_note(self) -> bool:
        return NoteType.INVALID < self.type < NoteType.VARIANT_BPM

    @property
    def is_special_note(self) -> bool:
        return self.type >= NoteType.VARIANT_BPM

    @property
    def is_flick(self) -> bool:
        return self.type != NoteType.SLIDE and self.flick_type != FlickType.NONE

    @property
    def is_tap(self) -> bool:
        return (
            self.type == NoteType.TAP_OR_FLICK
            and not self.is_flick
            and self.hold_target_id == INVALID_ID
        )

    @property
    def is_hold(self) -> bool:
        return self.hold_target_id != INVALID_ID

    @property
    def is_slide(self) -> bool:
        return self.type == NoteType.SLIDE

    @property
    def timing(self) -> Optional[float]:
        """Seconds from the start of the music, ``None`` once removed from its bar."""
        if self.bar is None:
            return None
        return self.bar.timing_at(self.index_in_grid)

    def _linked(self, note_id: int) -> Optional["Note"]:
        if note_id == INVALID_ID or self.bar is None:
            return None
        return self.bar.score.find_note_by_id(note_id)

    @property
    def prev_flick_or_slide_note(self) -> Optional["Note"]:
        return self._linked(self.prev_flick_or_slide_note_id)

    @property
    def next_flick_or_slide_note(self) -> Optional["Note"]:
        return self._linked(self.next_flick_or_slide_note_id)

    @property
    def hold_target(self) -> Optional["Note"]:
        return self._linked(self.hold_target_id)

    def set_special_type(self, note_type: NoteType):
        if note_type < NoteType.VARIANT_BPM:
            raise ValueError(f"{note_type!r} is not a special note type")
        self.type = NoteType(note_type)

    def sort_key(self) -> tuple[float, int, int]:
        return (self.timing, self.finish_position, self.id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "barIndex": self.bar.index if self.bar is not None else None,
            "indexInGrid": self.index_in_grid,
            "startPosition": int(self.start_position),
            "finishPosition": int(self.finish_position),
            "type": int(self.type),
            "flickType": int(self.flick_type),
            "prevFlickOrSlideNoteId": self.prev_flick_or_slide_note_id,
            "nextFlickOrSlideNoteId": self.next_flick_or_slide_note_id,
            "holdTargetId": self.hold_target_id,
        }


def validate_note_dict_values(data: dict, grid_count: int) -> tuple | None:
    if not isinstance(data, dict):
        return data, "Expected a dictionary for Note"
    if not isinstance(data.get("id"), int) or data["id"] <= INVALID_ID:
        return data, "'id' is missing or invalid"
    if data.get("type") not in [t.value for t in NoteType] or data["type"] == 0:
        return data, "'type' is missing or invalid"
    if not isinstance(data.get("indexInGrid"), int):
        return data, "'indexInGrid' is missing or invalid"
    if not 0 <= data["indexInGrid"] < grid_count:
        return data, f"'indexInGrid' is outside the bar's {grid_count} grid lines"
    if data["type"] < NoteType.VARIANT_BPM:
        for key in ["startPosition", "finishPosition"]:
            if data.get(key) not in range(NotePosition.LEFT, NotePosition.RIGHT + 1):
                return data, f"'{key}' is missing or invalid"
        if data.get("flickType") not in [t.value for t in FlickType]:
            return data, "'flickType' is missing or invalid"
    for key in ["prevFlickOrSlideNoteId", "nextFlickOrSlideNoteId", "holdTargetId"]:
        if data.get(key) == data["id"]:
            return data, f"'{key}' points to the note itself"
    return None
