# notevault

Storage for a note-taking application. Notes live in folders that nest to any
depth, notes can carry tags, and everything is kept in a single SQLite file.
The package also finds markdown links in note text.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## The store

`notevault.store.NoteStore` opens a database file. Passing `create=True` sets
up the tables and the three built-in folders: the root folder (`/`), the trash
(`Trash`) and the default notes folder (`Notes`). Their ids are in
`notevault.models.SpecialNodeId` (`ROOT_FOLDER`, `TRASH_FOLDER`,
`DEFAULT_NOTES_FOLDER`, and `INVALID` for "no node").

```python
from notevault.store import NoteStore
from notevault.models import NodeData, NodeType, TagData, SpecialNodeId

with NoteStore("notes.db", create=True) as store:
    note = NodeData(
        node_type=NodeType.NOTE,
        parent_id=SpecialNodeId.DEFAULT_NOTES_FOLDER,
        full_title="Groceries",
        content="Milk, eggs",
    )
    note_id = store.add_node(note)

    tag_id = store.add_tag(TagData(name="home", color="#448ac9"))
    store.add_note_to_tag(note_id, tag_id)

    print(store.get_node(note_id).full_title)
    print(store.get_tags_for_note(note_id))
```

Nodes and tags are the dataclasses `NodeData` and `TagData` from
`notevault.models`. Each node records an absolute path built from its
ancestors' ids, such as `/0/2/5`; `join_path` and `split_path` build and take
apart these paths. Dates are timezone-aware datetimes, stored as milliseconds
since the epoch (`datetime_to_ms`, `ms_to_datetime`).

Other things the store does:

- `save_note` updates a stored note or adds it when it is new;
  `update_note_content` writes a note's text, title, modification date and
  scroll position, and raises `ValueError` for a note without an id.
- `get_node` raises `KeyError` for an unknown id. Notes come back with their
  tag ids and the title of their parent folder.
- `move_node` moves a note or a whole folder into another folder, and raises
  `ValueError` if the target is not a folder. Moving into the trash stamps a
  deletion time and unpins.
- `remove_note` moves a note to the trash, or deletes it for good if it is
  there already. `move_folder_to_trash` trashes every note below a folder and
  deletes the folder and its subfolders.
- `rename_node`, `rename_tag`, `change_tag_color`, `remove_tag`,
  `remove_note_from_tag`, `set_note_is_pinned` and the `update_rel_pos_*`
  methods change single fields.
- `transaction()` is a context manager that commits on success and rolls back
  on an exception; nested uses join the outer transaction.

The store keeps a count of child notes for every folder and tag, and for the
root folder the number of notes outside the trash. `store.counter`, a
`notevault.counts.ChildNoteCounter`, updates these counts as notes are added,
moved, tagged or removed, and can recount them all with `recalculate_all()`.

## Events

The store reports changes through the signals on `store.signals`, a
`notevault.events.StoreSignals` made of `Signal` objects. Connect any
callable:

```python
store.signals.tag_added.connect(lambda tag: print("added", tag.name))
store.signals.child_notes_count_updated_folder.connect(
    lambda folder_id, path, count: print(folder_id, path, count)
)
```

`Signal.disconnect` raises `ValueError` for a callback that was never
connected.

## Listing and searching

`notevault.listing` builds the lists a note view shows. Each function returns
the notes together with a `ListViewInfo` describing the view, and also sends
them through `notes_list_received`.

```python
from notevault.listing import notes_in_folder, notes_in_tags, search_notes, clear_search, node_tag_tree

notes, info = notes_in_folder(store, SpecialNodeId.ROOT_FOLDER, True)
tagged, tag_info = notes_in_tags(store, {tag_id})
found, search_info = search_notes(store, "eggs", info)
notes, info = clear_search(store, search_info)
tree = node_tag_tree(store)
```

Lists are sorted with the most recently modified note first. Listing the root
folder gives every note that is not in the trash; a recursive listing of
another folder includes its subfolders. Listing by tags gives only the notes
that carry all of the tags. Searches in a folder view match case-insensitively;
searches in a tag view match the exact text.

## Import, export and migration

- `notevault.importer.import_notes` merges another notes database into the
  open store. Tags with the same name and colour, and folders with the same
  title under the same parent, are reused; notes are always added.
- `notevault.migration.export_notes` copies the database to a file.
- `restore_notes` replaces the store's database with a backup copy.
- `change_database_path` moves the database file and reopens it there; it
  raises `FileExistsError` if the new path is taken.
- `migrate_notes` and `migrate_trash` add a list of `NodeData` to the default
  notes folder or the trash; `migrate_from_v1_5_0` reads the `active_notes`
  and `deleted_notes` tables of an older database.

## Links in note text

```python
from notevault.links import parse_markdown_urls, markdown_url_at, is_valid_url

text = "See [docs](https://example.com/docs) or www.example.com"
parse_markdown_urls(text)
markdown_url_at(text, 5)             # "https://example.com/docs"
is_valid_url("https://example.com")  # True
```

The parser finds `<url>` links, `[text](url)` links, bare `scheme://` URLs,
`www.` hosts (given an `http://` prefix), and reference links such as
`[text][1]` whose target is defined as `[1]: url` in the text or in the
`document_text` passed alongside it. `markdown_url_at` returns `None` when no
link covers the position.

## What it does not do

notevault is a storage library only. It has no user interface, no editor and
no command to run. It does not open links or files. `import_notes` and
`restore_notes` accept only SQLite notes databases: any other file is reported
through `show_error_message` and raises `ValueError`.