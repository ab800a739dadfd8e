import sqlite3

import pytest

from starlight_project.notes import (
    BarParams,
    Difficulty,
    FlickType,
    InvalidNoteError,
    NoteExtraParams,
    NotePosition,
    NoteType,
    Project,
)
from starlight_project.sldproj import ProjectVersion, detect, load, save, save_as_backup
from starlight_project.sldproj import exporter


def add(score, bar_index, grid, position=NotePosition.CENTER, **kwargs):
    note = score.ensure_bar_index(bar_index).add_note()
    note.index_in_grid = grid
    note.start_position = position
    note.finish_position = position
    for key, value in kwargs.items():
        setattr(note, key, value)
    return note


@pytest.fixture
def project():
    project = Project.new()
    project.music_file_name = "music.wav"
    project.settings.global_bpm = 150.0
    project.settings.start_time_offset = 0.25

    master = project.get_score(Difficulty.MASTER)
    add(master, 0, 0, NotePosition.LEFT)
    hold_start = add(master, 0, 24, NotePosition.CENTER, type=NoteType.HOLD)
    hold_end = add(master, 1, 0, NotePosition.CENTER, type=NoteType.HOLD)
    hold_start.hold_target_id = hold_end.id
    hold_end.hold_target_id = hold_start.id
    flicks = [
        add(master, 2, i * 12, NotePosition(i + 1), flick_type=FlickType.RIGHT)
        for i in range(3)
    ]
    for prev, nxt in zip(flicks, flicks[1:]):
        prev.next_flick_or_slide_note_id = nxt.id
        nxt.prev_flick_or_slide_note_id = prev.id
    slides = [
        add(master, 3, i * 24, NotePosition.RIGHT, type=NoteType.SLIDE) for i in range(2)
    ]
    slides[0].next_flick_or_slide_note_id = slides[1].id
    slides[1].prev_flick_or_slide_note_id = slides[0].id
    bpm = add(master, 1, 48, NotePosition.NOWHERE)
    bpm.set_special_type(NoteType.VARIANT_BPM)
    bpm.extra_params = NoteExtraParams(new_bpm=200.0)
    master.bars[3].params = BarParams(user_defined_signature=4)

    add(project.get_score(Difficulty.DEBUT), 0, 48, NotePosition.CENTER_RIGHT)
    for score in project.scores.values():
        score.resolve_references()
    return project


def snapshot(project):
    return {
        (d, n.id, n.bar.index, n.index_in_grid, n.type, n.flick_type,
         n.start_position, n.finish_position, n.prev_flick_or_slide_note_id,
         n.next_flick_or_slide_note_id, n.hold_target_id)
        for d, score in project.scores.items()
        for n in score.notes
    }


def test_export_import_roundtrip(project, tmp_path):
    path = tmp_path / "song.sldproj"
    save(project, path)
    loaded = load(path)

    assert snapshot(loaded) == snapshot(project)
    assert loaded.music_file_name == "music.wav"
    assert loaded.settings == project.settings
    master = loaded.get_score(Difficulty.MASTER)
    assert master.bars[3].params == BarParams(user_defined_signature=4)
    assert master.special_notes()[0].extra_params.new_bpm == 200.0
    assert detect(path) == ProjectVersion.V0_3_1


def test_save_marks_project_clean(project, tmp_path):
    project.is_changed = True
    path = tmp_path / "song.sldproj"
    save(project, path)
    assert project.save_file_name == str(path.resolve())
    assert not project.is_changed
    # saving again overwrites the associated file
    add(project.get_score(Difficulty.PRO), 0, 0)
    save(project)
    assert len(load(path).get_score(Difficulty.PRO).notes) == 1


def test_backup_does_not_associate(project, tmp_path):
    project.is_changed = True
    save_as_backup(project, tmp_path / "backup.sldproj")
    assert project.save_file_name is None
    assert project.is_changed
    assert snapshot(load(tmp_path / "backup.sldproj")) == snapshot(project)


def test_save_without_file_name(project):
    with pytest.raises(ValueError):
        save(project)


def test_failed_save_keeps_previous_file(project, tmp_path, monkeypatch):
    path = tmp_path / "song.sldproj"
    save(project, path)
    before = snapshot(load(path))

    add(project.get_score(Difficulty.PRO), 0, 0)

    def explode(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(exporter, "insert_special_notes", explode)
    with pytest.raises(RuntimeError, match="disk full"):
        save(project, path)

    assert snapshot(load(path)) == before
    assert [p.name for p in tmp_path.iterdir()] == ["song.sldproj"]


def test_invalid_project_is_not_written(project, tmp_path):
    add(project.get_score(Difficulty.PRO), 0, 500)
    path = tmp_path / "song.sldproj"
    with pytest.raises(InvalidNoteError):
        save(project, path)
    assert not path.exists()


def test_ids_are_registered_before_rows(project, tmp_path):
    path = tmp_path / "song.sldproj"
    save(project, path)
    connection = sqlite3.connect(path)
    try:
        ids = [row[0] for row in connection.execute("SELECT id FROM note_ids ORDER BY rowid")]
        gaming = {row[0] for row in connection.execute("SELECT id FROM notes_master")}
        special = {row[0] for row in connection.execute("SELECT id FROM special_notes_master")}
    finally:
        connection.close()
    assert ids[0] == 0
    assert gaming | special <= set(ids)
    assert not gaming & special


def test_flick_chain_is_traversable_after_load(project, tmp_path):
    path = tmp_path / "song.sldproj"
    save(project, path)
    notes = load(path).get_score(Difficulty.MASTER).notes
    head = next(n for n in notes if n.is_flick and n.prev_flick_or_slide_note is None)
    chain = [head]
    while chain[-1].next_flick_or_slide_note is not None:
        chain.append(chain[-1].next_flick_or_slide_note)
    assert len(chain) == 3
    assert [n.finish_position for n in chain] == [1, 2, 3]
