import logging

from ..config import ProjectDefaults, DEFAULTS
from ..notes import Bar, Note, Project
from .sldproj_io import UnsupportedGridError

logger = logging.getLogger(__name__)


def _default_grid_count(bar: Bar, defaults: ProjectDefaults) -> int:
    # a bar's own params win over the global settings
    params = bar.params
    grid_per_signature = (
        params and params.user_defined_grid_per_signature
    ) or defaults.grid_per_signature
    signature = (params and params.user_defined_signature) or defaults.signature
    return grid_per_signature * signature


def fix_grid_lines(project: Project, defaults: ProjectDefaults = DEFAULTS) -> list[Note]:
    """Re-express every note's grid index in the default grid density.

    Each bar is rescaled by how much its own grid count changes, so bars
    whose params override the density are left alone. Expanding (e.g.
    48 -> 96) multiplies the indices. Shrinking (e.g. 384 -> 96) divides the
    indices that land on a new grid line and removes the notes that don't.
    The removed notes are returned.

    Only indices inside a bar change, so relative order is kept and nothing
    is re-sorted.
    """
    settings = project.settings
    if (settings.global_grid_per_signature, settings.global_signature) == (
        defaults.grid_per_signature,
        defaults.signature,
    ):
        return []

    rescaled_bars: list[tuple[Bar, int, int]] = []
    for score in project.scores.values():
        for bar in score.bars:
            old_grids = bar.total_grid_count
            new_grids = _default_grid_count(bar, defaults)
            if old_grids == new_grids or not bar.notes:
                continue
            if new_grids % old_grids != 0 and old_grids % new_grids != 0:
                raise UnsupportedGridError(old_grids, new_grids)
            rescaled_bars.append((bar, old_grids, new_grids))

    logger.debug(
        "Rescaling grid from %d to %d lines per bar.",
        settings.global_grid_count,
        defaults.grid_count,
    )
    settings.global_grid_per_signature = defaults.grid_per_signature
    settings.global_signature = defaults.signature

    incompatible_notes: list[Note] = []
    for bar, old_grids, new_grids in rescaled_bars:
        if new_grids % old_grids == 0:
            k = new_grids // old_grids
            for note in bar.notes:
                note.index_in_grid *= k
            continue
        k = old_grids // new_grids
        for note in bar.notes:
            if note.index_in_grid % k != 0:
                incompatible_notes.append(note)
            else:
                note.index_in_grid //= k
    if not incompatible_notes:
        return []

    logger.warning(
        "Notes on incompatible grid lines are found. Removing %d note(s): %s",
        len(incompatible_notes),
        ", ".join(str(note.id) for note in incompatible_notes),
    )
    for note in incompatible_notes:
        note.bar.remove_note(note)
    removed_ids = {note.id for note in incompatible_notes}
    for score in project.scores.values():
        for note in score.clear_links_to(removed_ids):
            logger.warning("Note %d lost a link to a removed note.", note.id)
        score.fix_sync_notes()
    return incompatible_notes
