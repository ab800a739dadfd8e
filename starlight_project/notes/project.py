from dataclasses import dataclass, field
from typing import Optional

from ..config import ProjectDefaults, DEFAULTS
from .note import Note, INVALID_ID
from .score import Score, Difficulty
from .settings import ScoreSettings

# Integer schema generation of the newest document layout (0.3.1)
CURRENT_VERSION = 301


@dataclass(eq=False)
class Project:
    settings: ScoreSettings
    music_file_name: str = ""
    version: int = CURRENT_VERSION
    scores: dict[Difficulty, Score] = field(default_factory=dict, repr=False)
    save_file_name: Optional[str] = None
    is_changed: bool = False
    _used_note_ids: set[int] = field(default_factory=set, repr=False)
    _max_note_id: int = field(default=INVALID_ID, repr=False)

    @classmethod
    def new(cls, defaults: ProjectDefaults = DEFAULTS) -> "Project":
        project = cls(settings=ScoreSettings.from_defaults(defaults))
        for difficulty in Difficulty:
            project.add_score(difficulty)
        return project

    def add_score(self, difficulty: Difficulty) -> Score:
        if difficulty in self.scores:
            raise ValueError(f"Project already has a {difficulty.name} score")
        score = Score(self, difficulty)
        self.scores[difficulty] = score
        return score

    def get_score(self, difficulty: Difficulty) -> Score:
        return self.scores[difficulty]

    def all_notes(self) -> list[Note]:
        return [note for score in self.scores.values() for note in score.notes]

    def is_note_id_used(self, note_id: int) -> bool:
        return note_id in self._used_note_ids

    def register_note_id(self, note_id: int):
        self._used_note_ids.add(note_id)
        self._max_note_id = max(self._max_note_id, note_id)

    def allocate_note_id(self) -> int:
        return self._max_note_id + 1

    def validate(self) -> bool:
        for score in self.scores.values():
            score.validate()
        return True
