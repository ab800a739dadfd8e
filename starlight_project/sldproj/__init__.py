from .detector import detect
from .exporter import save, save_as_backup
from .gridfix import fix_grid_lines
from .loader import load
from .sldproj_io import (
    ProjectVersion,
    UnknownVersionError,
    InvalidProjectError,
    UnsupportedGridError,
)
