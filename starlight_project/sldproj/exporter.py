import logging
import os
import sqlite3
import tempfile
from pathlib import Path

from ..notes import Project
from ..notes.note import INVALID_ID
from .sldproj_io import (
    DIFFICULTIES,
    Field,
    ProjectVersion,
    Table,
    create_bar_params_table,
    create_key_value_table,
    create_note_ids_table,
    create_notes_table,
    create_special_notes_table,
    insert_bar_params,
    insert_note_ids,
    insert_notes,
    insert_special_notes,
    insert_values,
)

logger = logging.getLogger(__name__)


def write_project(connection: sqlite3.Connection, project: Project):
    # Table structure
    create_key_value_table(connection, Table.MAIN)
    create_key_value_table(connection, Table.SCORE_SETTINGS)
    create_key_value_table(connection, Table.METADATA)
    create_note_ids_table(connection)
    for difficulty in DIFFICULTIES:
        create_notes_table(connection, difficulty)
        create_bar_params_table(connection, difficulty)
        create_special_notes_table(connection, difficulty)

    # Main
    insert_values(
        connection,
        Table.MAIN,
        {
            Field.MUSIC_FILE_NAME: project.music_file_name or "",
            Field.VERSION: int(ProjectVersion.current()),
        },
    )

    # Notes: every id is registered before any row refers to it
    scores = [project.scores[d] for d in DIFFICULTIES if d in project.scores]
    insert_note_ids(connection, [INVALID_ID])
    for score in scores:
        insert_note_ids(connection, (note.id for note in score.gaming_notes()))
    for score in scores:
        insert_notes(connection, score.difficulty, score.gaming_notes())

    # Score settings
    settings = project.settings
    insert_values(
        connection,
        Table.SCORE_SETTINGS,
        {
            Field.GLOBAL_BPM: repr(float(settings.global_bpm)),
            Field.START_TIME_OFFSET: repr(float(settings.start_time_offset)),
            Field.GLOBAL_GRID_PER_SIGNATURE: settings.global_grid_per_signature,
            Field.GLOBAL_SIGNATURE: settings.global_signature,
        },
    )

    # Bar params and special notes
    for score in scores:
        insert_bar_params(connection, score.difficulty, score.bars)
        special_notes = score.special_notes()
        insert_note_ids(connection, (note.id for note in special_notes))
        insert_special_notes(connection, score.difficulty, special_notes)

    # Metadata (none for now)


def _save(project: Project, path: os.PathLike | str, is_backup: bool):
    path = Path(path).resolve()
    project.validate()

    # Write next to the target and swap it in only after the commit.
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    os.close(fd)
    try:
        connection = sqlite3.connect(tmp_name, isolation_level=None)
        try:
            connection.execute("PRAGMA foreign_keys = ON")
            connection.execute("BEGIN")
            try:
                write_project(connection, project)
            except BaseException:
                connection.execute("ROLLBACK")
                raise
            connection.execute("COMMIT")
        finally:
            connection.close()
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.debug("Saved project to %s%s.", path, " (backup)" if is_backup else "")

    if not is_backup:
        project.save_file_name = str(path)
        project.is_changed = False


def save(project: Project, path: os.PathLike | str | None = None):
    if path is None:
        path = project.save_file_name
    if not path:
        raise ValueError("The project has no file name to save to")
    _save(project, path, is_backup=False)


def save_as_backup(project: Project, path: os.PathLike | str):
    """Write a copy of ``project`` without associating it with ``path``."""
    _save(project, path, is_backup=True)
