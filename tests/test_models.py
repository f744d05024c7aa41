from datetime import datetime, timedelta, timezone

import pytest

from notevault.models import (
    ListViewInfo,
    NodeData,
    NodeTagTreeData,
    NodeType,
    SpecialNodeId,
    TagData,
    datetime_to_ms,
    join_path,
    ms_to_datetime,
    split_path,
)


def test_special_ids_match_creation_order():
    path = join_path(join_path(join_path("", 0), 1), 2)
    assert path == "/0/1/2"
    assert [SpecialNodeId(i) for i in split_path(path)] == [
        SpecialNodeId.ROOT_FOLDER,
        SpecialNodeId.TRASH_FOLDER,
        SpecialNodeId.DEFAULT_NOTES_FOLDER,
    ]
    assert SpecialNodeId(-1) == SpecialNodeId.INVALID


def test_join_path_appends_id():
    assert join_path("/0", 2) == "/0/2"
    assert join_path("", 0) == "/0"


@pytest.mark.parametrize("ids", [[0], [0, 2], [0, 2, 17, 40]])
def test_split_path_inverts_join(ids):
    path = ""
    for node_id in ids:
        path = join_path(path, node_id)
    assert split_path(path) == ids


def test_split_path_empty():
    assert split_path("") == []


def test_epoch_is_zero():
    assert ms_to_datetime(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert datetime_to_ms(datetime(1970, 1, 1, tzinfo=timezone.utc)) == 0


def test_datetime_round_trip():
    value = datetime(2023, 5, 17, 8, 30, 12, 345000, tzinfo=timezone.utc)
    assert ms_to_datetime(datetime_to_ms(value)) == value


def test_datetime_with_offset_round_trip():
    value = datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone(timedelta(hours=5)))
    assert ms_to_datetime(datetime_to_ms(value)) == value


def test_naive_datetime_treated_as_local():
    naive = datetime(2021, 6, 1, 12, 0, 0)
    assert datetime_to_ms(naive) == datetime_to_ms(naive.astimezone())


def test_datetime_to_ms_none():
    assert datetime_to_ms(None) is None


def test_node_defaults_and_kind():
    node = NodeData()
    assert node.id == SpecialNodeId.INVALID
    assert node.is_note and not node.is_folder
    folder = NodeData(node_type=NodeType.FOLDER)
    assert folder.is_folder and not folder.is_note


def test_nodes_do_not_share_tag_sets():
    a, b = NodeData(), NodeData()
    a.tag_ids.add(3)
    assert b.tag_ids == set()


def test_tag_and_list_info_defaults():
    assert TagData(name="work").name == "work"
    info = ListViewInfo()
    assert info.is_in_search is False
    assert info.scroll_to_id == SpecialNodeId.INVALID
    tree = NodeTagTreeData()
    assert tree.node_tree_data == [] and tree.tag_tree_data == []