from .bar import Bar, BarParams
from .extra_params import NoteExtraParams
from .note import Note, NoteType, FlickType, NotePosition
from .project import Project
from .score import Score, Difficulty, InvalidNoteError, DanglingReferenceError
from .settings import ScoreSettings
