import os
import sqlite3
from enum import IntEnum
from pathlib import Path
from typing import Iterable

from ..notes import Difficulty, Note

# ==== Details about sldproj ====
class ProjectVersion(IntEnum):
    UNKNOWN = 0
    V0_1 = 100
    V0_2 = 200
    V0_3 = 300
    V0_3_1 = 301

    @classmethod
    def current(cls) -> "ProjectVersion":
        return cls.V0_3_1


class UnknownVersionError(ValueError):
    pass


class InvalidProjectError(Exception):
    pass


class UnsupportedGridError(Exception):
    def __init__(self, old_grids: int, new_grids: int):
        self.old_grids = old_grids
        self.new_grids = new_grids
        super().__init__(
            f"Cannot rescale {old_grids} grid lines per bar to {new_grids}: "
            "neither is a multiple of the other."
        )


class Table:
    MAIN = "main"
    SCORE_SETTINGS = "score_settings"
    METADATA = "metadata"
    NOTE_IDS = "note_ids"
    # v0.1 only
    SCORES = "scores"

    @staticmethod
    def notes(difficulty: Difficulty) -> str:
        return f"notes_{difficulty.table_suffix}"

    @staticmethod
    def bar_params(difficulty: Difficulty) -> str:
        return f"bar_params_{difficulty.table_suffix}"

    @staticmethod
    def special_notes(difficulty: Difficulty) -> str:
        return f"special_notes_{difficulty.table_suffix}"


class Field:
    MUSIC_FILE_NAME = "music_file_name"
    VERSION = "version"
    GLOBAL_BPM = "global_bpm"
    START_TIME_OFFSET = "start_time_offset"
    GLOBAL_GRID_PER_SIGNATURE = "global_grid_per_signature"
    GLOBAL_SIGNATURE = "global_signature"


class Column:
    ID = "id"
    BAR_INDEX = "bar_index"
    INDEX_IN_GRID = "index_in_grid"
    START_POSITION = "start_position"
    FINISH_POSITION = "finish_position"
    FLICK_TYPE = "flick_type"
    PREV_FLICK_NOTE_ID = "prev_flick_note_id"
    NEXT_FLICK_NOTE_ID = "next_flick_note_id"
    HOLD_TARGET_ID = "hold_target_id"
    NOTE_TYPE = "note_type"
    GRID_PER_SIGNATURE = "grid_per_signature"
    SIGNATURE = "signature"
    PARAM_VALUES = "param_values"


DIFFICULTIES = tuple(Difficulty)

# ==== SQLite IO ====
def open_readonly(path: os.PathLike) -> sqlite3.Connection:
    uri = Path(path).resolve().as_uri() + "?mode=ro"
    connection = sqlite3.connect(uri, uri=True)
    connection.row_factory = sqlite3.Row
    return connection


def table_exists(connection: sqlite3.Connection, table: str) -> bool:
    row = connection.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (table,)
    ).fetchone()
    return row is not None


def column_names(connection: sqlite3.Connection, table: str) -> set[str]:
    return {row[1] for row in connection.execute(f'PRAGMA table_info("{table}")')}


def get_values(connection: sqlite3.Connection, table: str) -> dict[str, str]:
    if not table_exists(connection, table):
        return {}
    return {
        row[0]: row[1]
        for row in connection.execute(f'SELECT "key", "value" FROM "{table}"')
    }


def read_rows(connection: sqlite3.Connection, table: str) -> list[sqlite3.Row]:
    # rowid keeps the on-disk order stable so duplicates resolve the same way
    return connection.execute(f'SELECT * FROM "{table}" ORDER BY rowid').fetchall()


def create_key_value_table(connection: sqlite3.Connection, table: str):
    connection.execute(
        f'CREATE TABLE "{table}" ("key" TEXT PRIMARY KEY NOT NULL, "value" TEXT NOT NULL)'
    )


def create_note_ids_table(connection: sqlite3.Connection):
    connection.execute(
        f'CREATE TABLE "{Table.NOTE_IDS}" ("{Column.ID}" INTEGER PRIMARY KEY NOT NULL)'
    )


def create_notes_table(connection: sqlite3.Connection, difficulty: Difficulty):
    ref = f'REFERENCES "{Table.NOTE_IDS}"("{Column.ID}")'
    connection.execute(
        f"""CREATE TABLE "{Table.notes(difficulty)}" (
            "{Column.ID}" INTEGER PRIMARY KEY NOT NULL {ref},
            "{Column.BAR_INDEX}" INTEGER NOT NULL,
            "{Column.INDEX_IN_GRID}" INTEGER NOT NULL,
            "{Column.START_POSITION}" INTEGER NOT NULL,
            "{Column.FINISH_POSITION}" INTEGER NOT NULL,
            "{Column.FLICK_TYPE}" INTEGER NOT NULL,
            "{Column.PREV_FLICK_NOTE_ID}" INTEGER NOT NULL {ref},
            "{Column.NEXT_FLICK_NOTE_ID}" INTEGER NOT NULL {ref},
            "{Column.HOLD_TARGET_ID}" INTEGER NOT NULL {ref},
            "{Column.NOTE_TYPE}" INTEGER NOT NULL
        )"""
    )


def create_bar_params_table(connection: sqlite3.Connection, difficulty: Difficulty):
    connection.execute(
        f"""CREATE TABLE "{Table.bar_params(difficulty)}" (
            "{Column.BAR_INDEX}" INTEGER PRIMARY KEY NOT NULL,
            "{Column.GRID_PER_SIGNATURE}" INTEGER,
            "{Column.SIGNATURE}" INTEGER
        )"""
    )


def create_special_notes_table(connection: sqlite3.Connection, difficulty: Difficulty):
    connection.execute(
        f"""CREATE TABLE "{Table.special_notes(difficulty)}" (
            "{Column.ID}" INTEGER PRIMARY KEY NOT NULL
                REFERENCES "{Table.NOTE_IDS}"("{Column.ID}"),
            "{Column.BAR_INDEX}" INTEGER NOT NULL,
            "{Column.INDEX_IN_GRID}" INTEGER NOT NULL,
            "{Column.NOTE_TYPE}" INTEGER NOT NULL,
            "{Column.PARAM_VALUES}" TEXT NOT NULL
        )"""
    )


def insert_values(connection: sqlite3.Connection, table: str, values: dict[str, object]):
    connection.executemany(
        f'INSERT INTO "{table}" ("key", "value") VALUES (?, ?)',
        [(key, str(value)) for key, value in values.items()],
    )


def insert_note_ids(connection: sqlite3.Connection, note_ids: Iterable[int]):
    connection.executemany(
        f'INSERT INTO "{Table.NOTE_IDS}" ("{Column.ID}") VALUES (?)',
        [(note_id,) for note_id in note_ids],
    )


def insert_notes(
    connection: sqlite3.Connection, difficulty: Difficulty, notes: Iterable[Note]
):
    connection.executemany(
        f'INSERT INTO "{Table.notes(difficulty)}" VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)',
        [
            (
                note.id,
                note.bar.index,
                note.index_in_grid,
                int(note.start_position),
                int(note.finish_position),
                int(note.flick_type),
                note.prev_flick_or_slide_note_id,
                note.next_flick_or_slide_note_id,
                note.hold_target_id,
                int(note.type),
            )
            for note in notes
        ],
    )


def insert_special_notes(
    connection: sqlite3.Connection, difficulty: Difficulty, notes: Iterable[Note]
):
    connection.executemany(
        f'INSERT INTO "{Table.special_notes(difficulty)}" VALUES (?, ?, ?, ?, ?)',
        [
            (
                note.id,
                note.bar.index,
                note.index_in_grid,
                int(note.type),
                note.extra_params.to_data_string() if note.extra_params else "",
            )
            for note in notes
        ],
    )


def insert_bar_params(connection: sqlite3.Connection, difficulty: Difficulty, bars):
    connection.executemany(
        f'INSERT INTO "{Table.bar_params(difficulty)}" VALUES (?, ?, ?)',
        [
            (
                bar.index,
                bar.params.user_defined_grid_per_signature,
                bar.params.user_defined_signature,
            )
            for bar in bars
            if bar.params is not None
        ],
    )
