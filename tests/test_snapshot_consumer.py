"""Tests for the preview-side snapshot consumer."""

from __future__ import annotations

from pathlib import Path

from pagesync.core.contracts.element import PageElement
from pagesync.core.snapshot.consumer import SnapshotConsumer
from pagesync.core.snapshot.medium import FileMedium, MemoryMedium
from pagesync.core.snapshot.store import DocumentSnapshot, SnapshotStore


def section(element_id: str) -> PageElement:
    return PageElement(id=element_id, kind="section", children=())


def test_initial_read_sees_earlier_write() -> None:
    """A consumer created after the last write still shows it (no signal needed)."""
    medium = MemoryMedium()
    SnapshotStore(medium, context="editor").write("doc", (section("s1"),))

    views: list[DocumentSnapshot | None] = []
    preview = SnapshotStore(medium, context="preview")
    consumer = SnapshotConsumer(preview, "doc", on_change=views.append)
    consumer.start()

    assert consumer.elements == (section("s1"),)
    assert views == [DocumentSnapshot(elements=(section("s1"),))]
    consumer.stop()


def test_every_signal_triggers_a_full_reread() -> None:
    medium = MemoryMedium()
    editor = SnapshotStore(medium, context="editor")
    views: list[DocumentSnapshot | None] = []

    with SnapshotConsumer(
        SnapshotStore(medium, context="preview"), "doc", on_change=views.append
    ) as consumer:
        assert views == [None]
        editor.write("doc", (section("a"),))
        editor.write("doc", (section("a"), section("b")))
        assert [e.id for e in consumer.elements] == ["a", "b"]

    assert len(views) == 3
    assert not consumer.running


def test_unchanged_reread_does_not_fire_on_change() -> None:
    medium = MemoryMedium()
    editor = SnapshotStore(medium, context="editor")
    editor.write("doc", (section("a"),))
    views: list[DocumentSnapshot | None] = []

    preview = SnapshotStore(medium, context="preview")
    consumer = SnapshotConsumer(preview, "doc", on_change=views.append)
    consumer.start()
    editor.write("doc", (section("a"),))

    assert consumer.refresh_count == 2
    assert len(views) == 1


def test_fallback_is_shown_until_first_write() -> None:
    medium = MemoryMedium()
    starter = (section("starter"),)
    consumer = SnapshotConsumer(SnapshotStore(medium, context="preview"), "doc", fallback=starter)
    consumer.start()
    assert consumer.elements == starter

    SnapshotStore(medium, context="editor").write("doc", (section("real"),))
    assert [e.id for e in consumer.elements] == ["real"]


def test_corrupt_snapshot_keeps_previous_view() -> None:
    medium = MemoryMedium()
    editor = SnapshotStore(medium, context="editor")
    editor.write("doc", (section("good"),))

    consumer = SnapshotConsumer(SnapshotStore(medium, context="preview"), "doc").start()
    medium.set("doc", "{corrupt", origin="editor")

    assert [e.id for e in consumer.elements] == ["good"]
    assert consumer.refresh() is False


def test_stopped_consumer_ignores_signals() -> None:
    medium = MemoryMedium()
    editor = SnapshotStore(medium, context="editor")
    consumer = SnapshotConsumer(SnapshotStore(medium, context="preview"), "doc").start()
    consumer.stop()

    editor.write("doc", (section("late"),))
    assert consumer.document is None

    assert consumer.refresh() is True
    assert [e.id for e in consumer.elements] == ["late"]


def test_default_key_is_preview_key() -> None:
    consumer = SnapshotConsumer(SnapshotStore(MemoryMedium()))
    assert consumer.key == "pagebuilder-preview"


def test_consumer_follows_file_medium_via_poll(tmp_path: Path) -> None:
    """Cross-process flow: the writer is a separate FileMedium instance."""
    preview_medium = FileMedium(tmp_path)
    consumer = SnapshotConsumer(SnapshotStore(preview_medium, context="preview"), "doc").start()
    assert consumer.document is None

    SnapshotStore(FileMedium(tmp_path), context="editor").write("doc", (section("s1"),))
    assert consumer.document is None  # no signal crosses processes by itself

    preview_medium.poll()
    assert [e.id for e in consumer.elements] == ["s1"]
