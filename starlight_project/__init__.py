__version__ = "0.3.1"
__all__ = [
    "load",
    "save",
    "save_as_backup",
    "detect",
    "Project",
    "Difficulty",
    "ProjectVersion",
    "ProjectDefaults",
]

from .config import ProjectDefaults, DEFAULTS
from .notes import Project, Difficulty
from .sldproj import load, save, save_as_backup, detect, ProjectVersion
