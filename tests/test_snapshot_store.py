"""Unit tests for storage media and the Snapshot Store.

Focus
-----
1. **Last writer wins**: `read` after `write` returns exactly the document
   written, from any context sharing the medium.
2. **Change signals**: other contexts are told a key changed; the writer is not.
3. **Failure modes**: quota and serialization errors reach the caller and
   leave the previous snapshot in place; corrupt values raise
   `MalformedDocument`.
4. **FileMedium**: atomic replace, key sanitizing, cross-process polling.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from pagesync.core.contracts.element import PageElement
from pagesync.core.errors import MalformedDocument, QuotaExceeded, SerializationError
from pagesync.core.snapshot.medium import (
    EXTERNAL_CONTEXT,
    FileMedium,
    MemoryMedium,
    StorageChange,
)
from pagesync.core.snapshot.store import DocumentSnapshot, SnapshotStore


def heading(element_id: str, text: str) -> PageElement:
    return PageElement(
        id=element_id, kind="widget", widget_type="heading", children=(), content={"text": text}
    )


def document(text: str = "Hello") -> tuple[PageElement, ...]:
    column = PageElement(id="c1", kind="column", children=(heading("w1", text),))
    return (PageElement(id="s1", kind="section", children=(column,)),)


# --------------------------------------------------------------------------- #
# SnapshotStore over MemoryMedium
# --------------------------------------------------------------------------- #


def test_read_absent_key_returns_none() -> None:
    store = SnapshotStore(MemoryMedium())
    assert store.read("pagebuilder-preview") is None


def test_read_after_write_across_contexts() -> None:
    medium = MemoryMedium()
    editor = SnapshotStore(medium, context="editor")
    preview = SnapshotStore(medium, context="preview")

    editor.write("doc", document("v1"))
    assert preview.read("doc") == DocumentSnapshot(elements=document("v1"))

    preview.write("doc", document("v2"))
    assert editor.read("doc") == DocumentSnapshot(elements=document("v2"))


def test_stored_envelope_shape() -> None:
    medium = MemoryMedium()
    size = SnapshotStore(medium).write("doc", document())
    raw = medium.get("doc")
    assert raw is not None
    assert size == len(raw.encode("utf-8"))
    data = json.loads(raw)
    assert list(data) == ["elements"]
    assert data["elements"][0]["type"] == "section"


def test_empty_document_round_trips() -> None:
    store = SnapshotStore(MemoryMedium())
    store.write("doc", ())
    assert store.read("doc") == DocumentSnapshot(elements=())


def test_read_accepts_bare_element_array() -> None:
    medium = MemoryMedium()
    medium.set("doc", json.dumps([{"id": "s", "type": "section", "children": []}]), origin="x")
    snapshot = SnapshotStore(medium).read("doc")
    assert snapshot is not None
    assert snapshot.elements[0].id == "s"


@pytest.mark.parametrize(
    "raw",
    ["{not json", '{"elements": [{"id": "s"}]}', '"just a string"'],
)
def test_corrupt_snapshot_raises_malformed_document(raw: str) -> None:
    medium = MemoryMedium()
    medium.set("doc", raw, origin="x")
    with pytest.raises(MalformedDocument):
        SnapshotStore(medium).read("doc")


def test_quota_exceeded_keeps_previous_snapshot() -> None:
    medium = MemoryMedium(quota_bytes=400)
    store = SnapshotStore(medium, context="editor")
    store.write("doc", document("small"))

    with pytest.raises(QuotaExceeded) as info:
        store.write("doc", document("x" * 1000))

    assert info.value.key == "doc"
    assert info.value.size > 400
    assert store.read("doc") == DocumentSnapshot(elements=document("small"))


def test_quota_counts_other_keys_but_not_the_replaced_one() -> None:
    medium = MemoryMedium(quota_bytes=100)
    medium.set("a", "x" * 60, origin="t")
    medium.set("a", "y" * 90, origin="t")  # replacing frees the old value
    with pytest.raises(QuotaExceeded):
        medium.set("b", "z" * 20, origin="t")


def test_serialization_error_leaves_store_untouched() -> None:
    medium = MemoryMedium()
    store = SnapshotStore(medium)
    store.write("doc", document())

    bad = PageElement(id="w", kind="widget", widget_type="x", children=(), content={"o": object()})
    with pytest.raises(SerializationError):
        store.write("doc", (bad,))
    assert store.read("doc") == DocumentSnapshot(elements=document())


@pytest.mark.parametrize(
    "bad",
    [[{"id": "s"}], [{"id": "s", "type": "banner", "children": []}], 42],
)
def test_undecodable_document_is_a_serialization_error(bad: object) -> None:
    store = SnapshotStore(MemoryMedium())
    store.write("doc", document())
    with pytest.raises(SerializationError):
        store.write("doc", bad)  # type: ignore[arg-type]
    assert store.read("doc") == DocumentSnapshot(elements=document())


def test_remove_deletes_key() -> None:
    store = SnapshotStore(MemoryMedium())
    store.write("doc", document())
    assert store.remove("doc") is True
    assert store.remove("doc") is False
    assert store.read("doc") is None


# --------------------------------------------------------------------------- #
# Change signals
# --------------------------------------------------------------------------- #


def test_watch_notifies_other_contexts_only() -> None:
    medium = MemoryMedium()
    editor = SnapshotStore(medium, context="editor")
    preview = SnapshotStore(medium, context="preview")
    editor_seen: list[StorageChange] = []
    preview_seen: list[StorageChange] = []
    editor.watch("doc", editor_seen.append)
    preview.watch("doc", preview_seen.append)

    editor.write("doc", document())

    assert editor_seen == []
    assert preview_seen == [StorageChange(key="doc", origin="editor")]


def test_watch_filters_by_key_and_can_be_cancelled() -> None:
    medium = MemoryMedium()
    writer = SnapshotStore(medium, context="editor")
    reader = SnapshotStore(medium, context="preview")
    seen: list[StorageChange] = []
    unwatch = reader.watch("doc", seen.append)

    writer.write_json("other", {"x": 1})
    assert seen == []

    writer.write("doc", document())
    unwatch()
    writer.write("doc", document("again"))
    assert len(seen) == 1


def test_delete_is_signalled() -> None:
    medium = MemoryMedium()
    writer = SnapshotStore(medium, context="editor")
    seen: list[StorageChange] = []
    SnapshotStore(medium, context="preview").watch("doc", seen.append)

    writer.write("doc", document())
    writer.remove("doc")
    assert seen[-1].deleted


def test_failing_watcher_does_not_break_the_write() -> None:
    medium = MemoryMedium()
    seen: list[str] = []

    def boom(_change: StorageChange) -> None:
        raise RuntimeError("watcher failed")

    medium.watch(boom, context="a")
    medium.watch(lambda c: seen.append(c.key), context="b")
    medium.set("doc", "{}", origin="writer")

    assert medium.get("doc") == "{}"
    assert seen == ["doc"]


# --------------------------------------------------------------------------- #
# FileMedium
# --------------------------------------------------------------------------- #


def test_file_medium_round_trip(tmp_path: Path) -> None:
    store = SnapshotStore(FileMedium(tmp_path), context="editor")
    store.write("pagebuilder-preview", document())

    assert (tmp_path / "pagebuilder-preview.json").exists()
    other_process = SnapshotStore(FileMedium(tmp_path), context="preview")
    assert other_process.read("pagebuilder-preview") == DocumentSnapshot(elements=document())


def test_file_medium_leaves_no_temp_files(tmp_path: Path) -> None:
    medium = FileMedium(tmp_path)
    for i in range(3):
        medium.set("doc", json.dumps({"n": i}), origin="t")
    assert sorted(p.name for p in tmp_path.iterdir()) == ["doc.json"]
    assert medium.get("doc") == '{"n": 2}'


def test_file_medium_escapes_unsafe_keys(tmp_path: Path) -> None:
    medium = FileMedium(tmp_path)
    path = medium.path_for("../escape/key")
    assert path.parent == tmp_path
    assert path.name == "..%2Fescape%2Fkey.json"
    medium.set("../escape/key", "{}", origin="t")
    assert medium.get("../escape/key") == "{}"


def test_file_medium_quota(tmp_path: Path) -> None:
    medium = FileMedium(tmp_path, quota_bytes=50)
    medium.set("a", "x" * 40, origin="t")
    with pytest.raises(QuotaExceeded):
        medium.set("b", "y" * 20, origin="t")
    assert medium.get("b") is None


def test_file_medium_poll_detects_external_changes(tmp_path: Path) -> None:
    (tmp_path / "old.json").write_text("{}", encoding="utf-8")
    medium = FileMedium(tmp_path)
    seen: list[StorageChange] = []
    medium.watch(seen.append, context="preview")

    # Files present at start-up are not changes.
    assert medium.poll() == []

    # A write from "another process" (a separate FileMedium instance).
    FileMedium(tmp_path).set("doc", '{"elements": []}', origin="editor")
    changes = medium.poll()
    assert changes == [StorageChange(key="doc", origin=EXTERNAL_CONTEXT)]
    assert seen == changes

    # Nothing new since the last poll.
    assert medium.poll() == []

    (tmp_path / "doc.json").unlink()
    assert medium.poll() == [StorageChange(key="doc", origin=EXTERNAL_CONTEXT, deleted=True)]


def test_file_medium_poll_ignores_own_writes(tmp_path: Path) -> None:
    medium = FileMedium(tmp_path)
    medium.set("doc", "{}", origin="editor")
    assert medium.poll() == []


def test_file_medium_poll_reports_escaped_keys_by_name(tmp_path: Path) -> None:
    FileMedium(tmp_path).set("pages/home", "{}", origin="editor")

    # A fresh process sees the existing file under its real key, not as a change.
    medium = FileMedium(tmp_path)
    assert medium.poll() == []

    FileMedium(tmp_path).set("pages/home", '{"v": 2}', origin="editor")
    assert medium.poll() == [StorageChange(key="pages/home", origin=EXTERNAL_CONTEXT)]
