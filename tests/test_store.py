from datetime import datetime, timezone

import pytest

from notevault.models import NodeData, NodeType, SpecialNodeId, TagData
from notevault.store import NoteStore

ROOT = SpecialNodeId.ROOT_FOLDER
TRASH = SpecialNodeId.TRASH_FOLDER
NOTES = SpecialNodeId.DEFAULT_NOTES_FOLDER


@pytest.fixture
def store(tmp_path):
    with NoteStore(tmp_path / "notes.db", create=True) as opened:
        yield opened


def make_note(content="hello", parent=NOTES):
    when = datetime(2023, 5, 1, 12, 0, tzinfo=timezone.utc)
    return NodeData(
        full_title=content,
        content=content,
        node_type=NodeType.NOTE,
        parent_id=int(parent),
        creation_date_time=when,
        last_modification_date_time=when,
    )


def make_folder(title, parent=NOTES):
    return NodeData(full_title=title, node_type=NodeType.FOLDER, parent_id=int(parent))


def test_create_makes_special_folders(store):
    assert store.get_node_absolute_path(ROOT) == "/0"
    assert store.get_node_absolute_path(TRASH) == "/0/1"
    assert store.get_node_absolute_path(NOTES) == "/0/2"
    assert store.get_folder_list() == {1: "Trash", 2: "Notes"}
    assert store.next_node_id() == 3


def test_add_note_places_it_under_parent(store):
    note_id = store.add_node(make_note())
    node = store.get_node(note_id)
    assert node.absolute_path == store.get_node_absolute_path(NOTES) + f"/{note_id}"
    assert node.parent_name == "Notes"
    assert node.content == "hello"
    assert node.deletion_date_time is None
    assert store.next_node_id() == note_id + 1


def test_add_note_updates_counts(store):
    store.add_node(make_note("a"))
    store.add_node(make_note("b"))
    assert store.get_child_notes_count_folder(NOTES).child_notes_count == 2
    assert store.get_child_notes_count_folder(ROOT).child_notes_count == 2


def test_positions_increase_among_siblings(store):
    first = store.add_node(make_note("a"))
    second = store.add_node(make_note("b"))
    assert store.get_node(second).relative_position == store.get_node(first).relative_position + 1
    assert store.next_available_position(NOTES, NodeType.NOTE) == (
        store.get_node(second).relative_position + 1
    )


def test_add_node_drops_nul_characters(store):
    note_id = store.add_node(make_note("a\x00b"))
    assert store.get_node(note_id).content == "ab"


def test_get_node_missing_raises(store):
    with pytest.raises(KeyError):
        store.get_node(999)


def test_node_exists(store):
    note_id = store.add_node(make_note())
    assert store.node_exists(note_id)
    assert not store.node_exists(note_id + 1)


def test_update_note_content(store):
    note_id = store.add_node(make_note())
    note = store.get_node(note_id)
    note.content = "changed"
    assert store.update_note_content(note) is True
    assert store.get_node(note_id).content == "changed"


def test_update_note_content_unknown_and_invalid(store):
    missing = make_note()
    missing.id = 500
    assert store.update_note_content(missing) is False
    with pytest.raises(ValueError):
        store.update_note_content(make_note())


def test_save_note_adds_then_updates(store):
    note = make_note("first")
    note_id = store.save_note(note)
    saved = store.get_node(note_id)
    saved.content = "second"
    assert store.save_note(saved) == note_id
    assert store.get_node(note_id).content == "second"
    with pytest.raises(ValueError):
        store.save_note(make_folder("x"))


def test_rename_node(store):
    store.rename_node(NOTES, "Inbox")
    assert store.get_folder_list()[int(NOTES)] == "Inbox"


def test_tags_and_counts(store):
    added = []
    store.signals.tag_added.connect(added.append)
    tag_id = store.add_tag(TagData(name="work", color="#ff0000"))
    assert added[0].id == tag_id and added[0].name == "work"
    assert store.next_tag_id() == tag_id + 1

    note_id = store.add_node(make_note())
    store.add_note_to_tag(note_id, tag_id)
    store.add_note_to_tag(note_id, tag_id)
    assert store.get_tags_for_note(note_id) == {tag_id}
    assert store.get_node(note_id).tag_ids == {tag_id}
    assert store.get_all_tags()[0].child_notes_count == 1

    store.remove_note_from_tag(note_id, tag_id)
    assert store.get_tags_for_note(note_id) == set()
    assert store.get_all_tags()[0].child_notes_count == 0


def test_tag_positions_increase(store):
    first = store.add_tag(TagData(name="a", color="red"))
    second = store.add_tag(TagData(name="b", color="blue"))
    tags = {tag.id: tag for tag in store.get_all_tags()}
    assert tags[second].relative_position == tags[first].relative_position + 1


def test_rename_recolor_and_remove_tag(store):
    renamed, recolored, removed = [], [], []
    store.signals.tag_renamed.connect(lambda *args: renamed.append(args))
    store.signals.tag_color_changed.connect(lambda *args: recolored.append(args))
    store.signals.tag_removed.connect(removed.append)
    tag_id = store.add_tag(TagData(name="old", color="red"))
    note_id = store.add_node(make_note())
    store.add_note_to_tag(note_id, tag_id)

    store.rename_tag(tag_id, "new")
    store.change_tag_color(tag_id, "blue")
    tag = store.get_all_tags()[0]
    assert (tag.name, tag.color) == ("new", "blue")
    assert renamed == [(tag_id, "new")]
    assert recolored == [(tag_id, "blue")]

    store.remove_tag(tag_id)
    assert store.get_all_tags() == []
    assert store.get_tags_for_note(note_id) == set()
    assert removed == [tag_id]


def test_remove_note_goes_to_trash_then_is_deleted(store):
    note_id = store.add_node(make_note())
    store.set_note_is_pinned(note_id, True)
    store.remove_note(store.get_node(note_id))
    trashed = store.get_node(note_id)
    assert trashed.parent_id == TRASH
    assert trashed.absolute_path == store.get_node_absolute_path(TRASH) + f"/{note_id}"
    assert trashed.deletion_date_time is not None
    assert trashed.is_pinned_note is False
    assert store.get_child_notes_count_folder(NOTES).child_notes_count == 0
    assert store.get_child_notes_count_folder(TRASH).child_notes_count == 1
    assert store.get_child_notes_count_folder(ROOT).child_notes_count == 0

    store.remove_note(trashed)
    assert not store.node_exists(note_id)
    assert store.get_child_notes_count_folder(TRASH).child_notes_count == 0


def test_move_out_of_trash_restores_tag_counts(store):
    tag_id = store.add_tag(TagData(name="t", color="c"))
    note_id = store.add_node(make_note())
    store.add_note_to_tag(note_id, tag_id)
    store.move_node(note_id, store.get_node(TRASH))
    assert store.get_all_tags()[0].child_notes_count == 0
    store.move_node(note_id, store.get_node(NOTES))
    assert store.get_all_tags()[0].child_notes_count == 1
    assert store.get_child_notes_count_folder(ROOT).child_notes_count == 1


def test_move_node_into_note_raises(store):
    note_id = store.add_node(make_note())
    other = store.add_node(make_note("other"))
    with pytest.raises(ValueError):
        store.move_node(note_id, store.get_node(other))


def test_move_folder_rewrites_child_paths(store):
    folder_id = store.add_node(make_folder("Work"))
    note_id = store.add_node(make_note(parent=folder_id))
    store.move_node(folder_id, store.get_node(ROOT))
    folder = store.get_node(folder_id)
    assert folder.absolute_path == store.get_node_absolute_path(ROOT) + f"/{folder_id}"
    assert store.get_node(note_id).absolute_path == folder.absolute_path + f"/{note_id}"
    assert store.get_child_notes_count_folder(folder_id).child_notes_count == 1


def test_move_folder_to_trash(store):
    folder_id = store.add_node(make_folder("Work"))
    sub_id = store.add_node(make_folder("Sub", parent=folder_id))
    note_id = store.add_node(make_note(parent=sub_id))
    store.move_folder_to_trash(store.get_node(folder_id))
    assert not store.node_exists(folder_id)
    assert not store.node_exists(sub_id)
    assert store.get_node(note_id).parent_id == TRASH
    assert folder_id not in store.get_folder_list()


def test_get_all_folders(store):
    folder_id = store.add_node(make_folder("Work"))
    folders = {node.id: node for node in store.get_all_folders()}
    assert set(folders) == {int(ROOT), int(TRASH), int(NOTES), folder_id}
    assert all(node.is_folder for node in folders.values())


def test_relative_position_updates(store):
    note_id = store.add_node(make_note())
    store.update_rel_pos_node(note_id, 7)
    assert store.get_node(note_id).relative_position == 7
    store.update_rel_pos_pinned_note(note_id, 4)
    assert store.get_node(note_id).relative_position == 4
    store.update_rel_pos_pinned_note_an(note_id, 9)
    assert store.get_node(note_id).relative_pos_an == 9
    tag_id = store.add_tag(TagData(name="t", color="c"))
    store.update_rel_pos_tag(tag_id, 5)
    assert store.get_all_tags()[0].relative_position == 5


def test_transaction_rolls_back(store):
    before = store.next_node_id()
    with pytest.raises(RuntimeError):
        with store.transaction():
            store.add_node(make_note())
            raise RuntimeError("boom")
    assert store.next_node_id() == before
    assert not store.node_exists(before)


def test_reopen_keeps_data(tmp_path):
    path = tmp_path / "notes.db"
    with NoteStore(path, create=True) as first:
        note_id = first.add_node(make_note("kept"))
    with NoteStore(path) as second:
        assert second.get_node(note_id).content == "kept"


def test_closed_store_raises(tmp_path):
    with NoteStore(tmp_path / "notes.db", create=True) as opened:
        pass
    with pytest.raises(RuntimeError):
        opened.next_node_id()


def test_open_emits_folder_counts(tmp_path):
    path = tmp_path / "notes.db"
    with NoteStore(path, create=True) as first:
        first.add_node(make_note())
    with NoteStore(path) as second:
        seen = []
        second.signals.child_notes_count_updated_folder.connect(
            lambda *args: seen.append(args)
        )
        second.open(path)
        counts = {folder_id: count for folder_id, _, count in seen}
        assert counts[int(NOTES)] == 1
        assert counts[int(ROOT)] == 1