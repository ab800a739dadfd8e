import json
import logging
import os
import sqlite3
from contextlib import closing
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

from dataclasses_json import dataclass_json, LetterCase, Undefined

from ..config import ProjectDefaults, DEFAULTS
from ..notes import (
    BarParams,
    FlickType,
    NoteExtraParams,
    NotePosition,
    NoteType,
    Project,
    Score,
    ScoreSettings,
)
from .detector import detect
from .gridfix import fix_grid_lines
from .sldproj_io import (
    DIFFICULTIES,
    Column,
    Field,
    InvalidProjectError,
    ProjectVersion,
    Table,
    UnknownVersionError,
    column_names,
    get_values,
    open_readonly,
    read_rows,
    table_exists,
)

logger = logging.getLogger(__name__)


@dataclass_json(letter_case=LetterCase.CAMEL, undefined=Undefined.EXCLUDE)
@dataclass
class NoteRow:
    """One gameplay note as stored by any schema generation."""

    id: int
    bar_index: int
    index_in_grid: int
    start_position: int
    finish_position: int
    flick_type: int = FlickType.NONE
    prev_flick_note_id: int = 0
    next_flick_note_id: int = 0
    hold_target_id: int = 0
    note_type: Optional[int] = None


ROW_COLUMNS = tuple(f.name for f in fields(NoteRow))


def row_init(row: sqlite3.Row) -> NoteRow:
    keys = row.keys()
    return NoteRow(**{k: row[k] for k in ROW_COLUMNS if k in keys})


# ==== Main values and settings ====
def read_main(connection: sqlite3.Connection, project: Project):
    main_values = get_values(connection, Table.MAIN)
    project.music_file_name = main_values.get(Field.MUSIC_FILE_NAME) or ""


def read_score_settings(connection: sqlite3.Connection, project: Project):
    values = get_values(connection, Table.SCORE_SETTINGS)
    settings = project.settings
    try:
        settings.global_bpm = float(values[Field.GLOBAL_BPM])
        settings.start_time_offset = float(values[Field.START_TIME_OFFSET])
        settings.global_grid_per_signature = int(values[Field.GLOBAL_GRID_PER_SIGNATURE])
        settings.global_signature = int(values[Field.GLOBAL_SIGNATURE])
    except KeyError as e:
        raise InvalidProjectError(f"Score setting {e} is missing") from e
    except ValueError as e:
        raise InvalidProjectError(f"Invalid score setting: {e}") from e
    if (
        settings.global_bpm <= 0
        or settings.global_grid_per_signature <= 0
        or settings.global_signature <= 0
    ):
        raise InvalidProjectError(f"Invalid score settings: {settings}")


# ==== Notes ====
def read_v01_note_rows(connection: sqlite3.Connection, score: Score) -> list[NoteRow]:
    scores = get_values(connection, Table.SCORES)
    data = scores.get(score.difficulty.table_suffix)
    if not data:
        return []
    return [NoteRow.from_dict(item) for item in json.loads(data)]


def read_note_rows(connection: sqlite3.Connection, score: Score) -> list[NoteRow]:
    table = Table.notes(score.difficulty)
    if not table_exists(connection, table):
        logger.debug("No notes table for %s.", score.difficulty.name)
        return []
    # v0.3.1: "note_type"
    # Before that only flicks could be chained, so rows without the column
    # are loaded as TAP_OR_FLICK and refined when references are resolved.
    if Column.NOTE_TYPE not in column_names(connection, table):
        logger.debug("%s has no note type column.", table)
    return [row_init(row) for row in read_rows(connection, table)]


def populate_score(score: Score, rows: list[NoteRow]):
    for row in rows:
        if row.bar_index < 0:
            logger.warning("Note with ID '%d' has a negative bar index.", row.id)
            continue
        try:
            start = NotePosition(row.start_position)
            finish = NotePosition(row.finish_position)
            flick = FlickType(row.flick_type)
            note_type = (
                NoteType(row.note_type)
                if row.note_type is not None
                else NoteType.TAP_OR_FLICK
            )
        except ValueError as e:
            logger.warning("Note with ID '%d' is skipped: %s", row.id, e)
            continue
        bar = score.ensure_bar_index(row.bar_index)
        note = bar.add_note_without_updating_global_notes(row.id)
        if note is None:
            logger.warning("Note with ID '%d' already exists.", row.id)
            continue
        note.index_in_grid = row.index_in_grid
        note.start_position = start
        note.finish_position = finish
        note.type = note_type
        note.flick_type = flick
        note.prev_flick_or_slide_note_id = row.prev_flick_note_id
        note.next_flick_or_slide_note_id = row.next_flick_note_id
        note.hold_target_id = row.hold_target_id


def read_bar_params(connection: sqlite3.Connection, score: Score):
    table = Table.bar_params(score.difficulty)
    if not table_exists(connection, table):
        return
    for row in read_rows(connection, table):
        index = row[Column.BAR_INDEX]
        if index < 0:
            continue
        score.ensure_bar_index(index).params = BarParams(
            user_defined_grid_per_signature=row[Column.GRID_PER_SIGNATURE],
            user_defined_signature=row[Column.SIGNATURE],
        )


def read_special_notes(connection: sqlite3.Connection, score: Score):
    table = Table.special_notes(score.difficulty)
    if not table_exists(connection, table):
        return
    for row in read_rows(connection, table):
        bar_index = row[Column.BAR_INDEX]
        grid = row[Column.INDEX_IN_GRID]
        params_string = row[Column.PARAM_VALUES] or ""
        try:
            note_type = NoteType(row[Column.NOTE_TYPE])
        except ValueError:
            logger.warning("Special note with ID '%d' has an unknown type.", row[Column.ID])
            continue
        if bar_index < 0 or note_type < NoteType.VARIANT_BPM:
            logger.warning("Special note with ID '%d' is skipped.", row[Column.ID])
            continue
        bar = score.ensure_bar_index(bar_index)
        # Older documents gave special notes no stable identity, so match by
        # position. First match wins.
        note = next(
            (n for n in bar.notes if n.type == note_type and n.index_in_grid == grid),
            None,
        )
        if note is None:
            note = bar.add_note_without_updating_global_notes(row[Column.ID])
            if note is None:
                note = bar.add_note_without_updating_global_notes(
                    score.project.allocate_note_id()
                )
            note.set_special_type(note_type)
            note.index_in_grid = grid
            note.extra_params = NoteExtraParams.from_data_string(params_string, note)
        elif note.extra_params is None:
            note.extra_params = NoteExtraParams.from_data_string(params_string, note)
        else:
            note.extra_params.update_by_data_string(params_string, note)


# ==== Schema generations ====
def read_v01(connection: sqlite3.Connection, project: Project):
    read_main(connection, project)
    read_score_settings(connection, project)
    for difficulty in DIFFICULTIES:
        score = project.add_score(difficulty)
        populate_score(score, read_v01_note_rows(connection, score))


def read_v02(connection: sqlite3.Connection, project: Project):
    read_main(connection, project)
    read_score_settings(connection, project)
    for difficulty in DIFFICULTIES:
        score = project.add_score(difficulty)
        populate_score(score, read_note_rows(connection, score))


def read_v03x(connection: sqlite3.Connection, project: Project):
    # v0.3.1 is a superset of v0.3, the note type column is the only change.
    read_v02(connection, project)
    for score in project.scores.values():
        read_bar_params(connection, score)
        read_special_notes(connection, score)


def load(
    path: os.PathLike | str,
    version: ProjectVersion | None = None,
    defaults: ProjectDefaults = DEFAULTS,
) -> Project:
    if version == ProjectVersion.UNKNOWN:
        raise UnknownVersionError("Cannot load a project of unknown version")
    path = Path(path).resolve()
    if not path.is_file():
        raise FileNotFoundError(f"No project file at {path}")
    version = detect(path) if version is None else ProjectVersion(version)
    logger.debug("Loading %s as version %s.", path, version.name)

    project = Project(settings=ScoreSettings.from_defaults(defaults))
    with closing(open_readonly(path)) as connection:
        match version:
            case ProjectVersion.V0_1:
                read_v01(connection, project)
            case ProjectVersion.V0_2:
                read_v02(connection, project)
            case ProjectVersion.V0_3 | ProjectVersion.V0_3_1:
                read_v03x(connection, project)
            case _:
                raise UnknownVersionError(f"Unsupported project version: {version!r}")

    for score in project.scores.values():
        score.resolve_references()
    fix_grid_lines(project, defaults)
    for score in project.scores.values():
        score.update_bar_timings()
        score.sort_notes()

    # Keep the newest version so the next save upgrades the document.
    project.version = ProjectVersion.current()
    project.save_file_name = str(path)
    project.is_changed = False
    return project
