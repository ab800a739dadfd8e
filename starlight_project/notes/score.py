from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING

from .bar import Bar
from .note import Note, NoteType, INVALID_ID, validate_note_dict_values

if TYPE_CHECKING:
    from .project import Project


class Difficulty(IntEnum):
    DEBUT = 1
    REGULAR = 2
    PRO = 3
    MASTER = 4
    MASTER_PLUS = 5

    @property
    def table_suffix(self) -> str:
        return self.name.lower()


class InvalidNoteError(Exception):
    def __init__(self, note: dict, t: str, error_message: str):
        self.note = note
        self.error_message = error_message
        super().__init__(f"Invalid {t} note: {self.note}. Error: {self.error_message}")


class DanglingReferenceError(Exception):
    def __init__(self, note: Note, field_name: str, target_id: int):
        self.note = note
        self.field_name = field_name
        self.target_id = target_id
        super().__init__(
            f"Note {note.id} refers to note {target_id} in '{field_name}', "
            "which does not exist in the same score."
        )


LINK_FIELDS = (
    "prev_flick_or_slide_note_id",
    "next_flick_or_slide_note_id",
    "hold_target_id",
)


@dataclass(eq=False)
class Score:
    project: "Project" = field(repr=False)
    difficulty: Difficulty
    bars: list[Bar] = field(default_factory=list)
    # every note of every bar, sorted by (timing, lane)
    notes: list[Note] = field(default_factory=list, repr=False)
    _notes_by_id: dict[int, Note] = field(default_factory=dict, repr=False)

    def find_note_by_id(self, note_id: int) -> Note | None:
        return self._notes_by_id.get(note_id)

    def register_note(self, note: Note):
        self.notes.append(note)
        self._notes_by_id[note.id] = note
        self.project.register_note_id(note.id)

    def unregister_note(self, note: Note):
        self.notes.remove(note)
        del self._notes_by_id[note.id]
        # the id stays registered with the project so it is never handed out again

    def ensure_bar_index(self, index: int) -> Bar:
        for i in range(len(self.bars), index + 1):
            self.bars.append(Bar(self, i))
        return self.bars[index]

    def append_bar(self) -> Bar:
        bar = self.ensure_bar_index(len(self.bars))
        self.project.is_changed = True
        self.update_bar_timings()
        return bar

    def remove_note(self, note: Note):
        note.bar.remove_note(note)

    def gaming_notes(self) -> list[Note]:
        return [note for note in self.notes if note.is_gaming_note]

    def special_notes(self) -> list[Note]:
        return [note for note in self.notes if note.is_special_note]

    def resolve_references(self):
        """Check every link, refine loader placeholders, rebuild timings and order.

        Running it again on a resolved score changes nothing.
        """
        for note in self.notes:
            for field_name in LINK_FIELDS:
                target_id = getattr(note, field_name)
                if target_id == INVALID_ID:
                    continue
                if target_id == note.id or target_id not in self._notes_by_id:
                    raise DanglingReferenceError(note, field_name, target_id)
            # Pre-0.3.1 documents only knew taps/flicks; a hold target makes it a hold.
            if note.type == NoteType.TAP_OR_FLICK and note.hold_target_id != INVALID_ID:
                note.type = NoteType.HOLD
        self.fix_sync_notes()
        self.update_bar_timings()
        self.sort_notes()

    def fix_sync_notes(self):
        groups: dict[tuple[int, int], list[Note]] = {}
        for note in self.gaming_notes():
            groups.setdefault((note.bar.index, note.index_in_grid), []).append(note)
        for note in self.notes:
            note.is_sync = False
        for group in groups.values():
            if len(group) > 1:
                for note in group:
                    note.is_sync = True

    def clear_links_to(self, removed_ids: set[int]) -> list[Note]:
        touched = []
        for note in self.notes:
            for field_name in LINK_FIELDS:
                if getattr(note, field_name) in removed_ids:
                    setattr(note, field_name, INVALID_ID)
                    touched.append(note)
        return touched

    def update_bar_timings(self):
        settings = self.project.settings
        time = settings.start_time_offset
        bpm = settings.global_bpm
        for bar in self.bars:
            bar.update_timings(time, bpm)
            time = bar.end_time
            bpm = bar.end_bpm

    def sort_notes(self):
        for bar in self.bars:
            bar.sort_notes()
        self.notes.sort(key=Note.sort_key)

    def validate(self) -> bool:
        for note in self.notes:
            validation_result = validate_note_dict_values(
                note.to_dict(), note.bar.total_grid_count
            )
            if validation_result:
                note_dict, error_message = validation_result
                raise InvalidNoteError(note_dict, self.difficulty.name, error_message)
            for field_name in LINK_FIELDS:
                target_id = getattr(note, field_name)
                if target_id == INVALID_ID:
                    continue
                target = self._notes_by_id.get(target_id)
                if target is None:
                    raise DanglingReferenceError(note, field_name, target_id)
                # only gameplay notes are stored with links
                if note.is_special_note or target.is_special_note:
                    raise InvalidNoteError(
                        note.to_dict(),
                        self.difficulty.name,
                        f"'{field_name}' links a special note",
                    )
        return True
