import json
import sqlite3

import pytest

from starlight_project.notes import Difficulty


def note_row(
    id: int,
    bar_index: int,
    index_in_grid: int,
    position: int = 3,
    flick_type: int = 0,
    prev: int = 0,
    next: int = 0,
    hold: int = 0,
    note_type: int | None = None,
) -> dict:
    row = {
        "id": id,
        "bar_index": bar_index,
        "index_in_grid": index_in_grid,
        "start_position": position,
        "finish_position": position,
        "flick_type": flick_type,
        "prev_flick_note_id": prev,
        "next_flick_note_id": next,
        "hold_target_id": hold,
    }
    if note_type is not None:
        row["note_type"] = note_type
    return row


def _camel(key: str) -> str:
    head, *tail = key.split("_")
    return head + "".join(part.capitalize() for part in tail)


def _key_value(connection: sqlite3.Connection, table: str, values: dict):
    connection.execute(f'CREATE TABLE "{table}" ("key" TEXT PRIMARY KEY, "value" TEXT)')
    connection.executemany(
        f'INSERT INTO "{table}" VALUES (?, ?)',
        [(k, str(v)) for k, v in values.items() if v is not None],
    )


@pytest.fixture
def legacy_document(tmp_path):
    """Build a document the way older editors wrote it, with raw SQL."""

    def build(
        version: str | None = "0.3",
        grid_per_signature: int = 24,
        signature: int = 4,
        notes: dict[Difficulty, list[dict]] | None = None,
        bar_params: dict[Difficulty, list[tuple]] | None = None,
        special_notes: dict[Difficulty, list[tuple]] | None = None,
        name: str = "legacy.sldproj",
    ):
        path = tmp_path / name
        connection = sqlite3.connect(path)
        with connection:
            _key_value(
                connection,
                "main",
                {"music_file_name": "song.wav", "version": version},
            )
            _key_value(
                connection,
                "score_settings",
                {
                    "global_bpm": 120,
                    "start_time_offset": 0,
                    "global_grid_per_signature": grid_per_signature,
                    "global_signature": signature,
                },
            )
            notes = notes or {}
            if version in ("0.1", "100"):
                _key_value(
                    connection,
                    "scores",
                    {
                        d.name.lower(): json.dumps(
                            [{_camel(k): v for k, v in row.items()} for row in rows]
                        )
                        for d, rows in notes.items()
                    },
                )
            else:
                for difficulty in Difficulty:
                    rows = notes.get(difficulty, [])
                    columns = list(note_row(0, 0, 0).keys())
                    if any("note_type" in row for row in rows):
                        columns.append("note_type")
                    table = f"notes_{difficulty.name.lower()}"
                    connection.execute(
                        f'CREATE TABLE "{table}" ({", ".join(columns)})'
                    )
                    connection.executemany(
                        f'INSERT INTO "{table}" VALUES ({", ".join("?" * len(columns))})',
                        [tuple(row.get(c, 0) for c in columns) for row in rows],
                    )
            for difficulty, rows in (bar_params or {}).items():
                table = f"bar_params_{difficulty.name.lower()}"
                connection.execute(
                    f'CREATE TABLE "{table}" (bar_index, grid_per_signature, signature)'
                )
                connection.executemany(f'INSERT INTO "{table}" VALUES (?, ?, ?)', rows)
            for difficulty, rows in (special_notes or {}).items():
                table = f"special_notes_{difficulty.name.lower()}"
                connection.execute(
                    f'CREATE TABLE "{table}" '
                    "(id, bar_index, index_in_grid, note_type, param_values)"
                )
                connection.executemany(
                    f'INSERT INTO "{table}" VALUES (?, ?, ?, ?, ?)', rows
                )
        connection.close()
        return path

    return build
