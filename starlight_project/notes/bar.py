from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from .note import Note, NoteType

if TYPE_CHECKING:
    from .score import Score


@dataclass
class BarParams:
    user_defined_grid_per_signature: Optional[int] = None
    user_defined_signature: Optional[int] = None


@dataclass(eq=False)
class Bar:
    score: "Score" = field(repr=False)
    index: int
    params: Optional[BarParams] = None
    notes: list[Note] = field(default_factory=list, repr=False)
    start_time: float = 0.0
    start_bpm: float = 0.0
    # (grid index, time, bpm) at each tempo change, first entry at grid 0
    _tempo_segments: list[tuple[int, float, float]] = field(
        default_factory=list, repr=False
    )

    @property
    def grid_per_signature(self) -> int:
        if self.params and self.params.user_defined_grid_per_signature:
            return self.params.user_defined_grid_per_signature
        return self.score.project.settings.global_grid_per_signature

    @property
    def signature(self) -> int:
        if self.params and self.params.user_defined_signature:
            return self.params.user_defined_signature
        return self.score.project.settings.global_signature

    @property
    def total_grid_count(self) -> int:
        return self.grid_per_signature * self.signature

    @property
    def end_bpm(self) -> float:
        return self._tempo_segments[-1][2] if self._tempo_segments else self.start_bpm

    @property
    def end_time(self) -> float:
        return self.timing_at(self.total_grid_count)

    def update_timings(self, start_time: float, start_bpm: float):
        self.start_time = start_time
        self.start_bpm = start_bpm
        segments = [(0, start_time, start_bpm)]
        bpm_notes = sorted(
            (n for n in self.notes if n.type == NoteType.VARIANT_BPM),
            key=lambda n: (n.index_in_grid, n.id),
        )
        for note in bpm_notes:
            time = self._time_in_segment(segments[-1], note.index_in_grid)
            bpm = note.extra_params.new_bpm if note.extra_params else start_bpm
            if note.index_in_grid == segments[-1][0]:
                segments[-1] = (note.index_in_grid, time, bpm)
            else:
                segments.append((note.index_in_grid, time, bpm))
        self._tempo_segments = segments

    def _time_in_segment(self, segment: tuple[int, float, float], index: int) -> float:
        grid, time, bpm = segment
        return time + (index - grid) / self.grid_per_signature * 60 / bpm

    def timing_at(self, index_in_grid: int) -> float:
        if not self._tempo_segments:
            self.score.update_bar_timings()
        segment = self._tempo_segments[0]
        for s in self._tempo_segments:
            if s[0] > index_in_grid:
                break
            segment = s
        return self._time_in_segment(segment, index_in_grid)

    def add_note(self, note_id: int | None = None) -> Note:
        """Create a note in this bar and keep the score's note list sorted."""
        project = self.score.project
        if note_id is None:
            note_id = project.allocate_note_id()
        elif project.is_note_id_used(note_id):
            note_id = project.allocate_note_id()
        note = self._attach(note_id)
        project.is_changed = True
        self.score.sort_notes()
        return note

    def add_note_without_updating_global_notes(self, note_id: int) -> Note | None:
        """Loader path: returns ``None`` if ``note_id`` is already taken."""
        if self.score.project.is_note_id_used(note_id):
            return None
        return self._attach(note_id)

    def _attach(self, note_id: int) -> Note:
        note = Note(id=note_id, bar=self)
        self.notes.append(note)
        self.score.register_note(note)
        return note

    def remove_note(self, note: Note):
        self.notes.remove(note)
        self.score.unregister_note(note)
        note.bar = None
        self.score.project.is_changed = True

    def sort_notes(self):
        self.notes.sort(key=Note.sort_key)
