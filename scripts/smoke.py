# scripts/smoke.py
"""
Smoke Test Script for pagesync synchronization.

Simulates the two execution contexts of the page builder inside one process:
an *editor* that owns the live tree and a *preview* that follows the snapshot.
Both share one storage medium but no memory.

Usage
-----
1. In-memory medium (default):
    $ uv run python scripts/smoke.py

2. File medium, so `pagesync watch --dir <dir>` in another terminal follows along:
    $ uv run python scripts/smoke.py --dir artifacts/snapshots
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from pagesync.core.broadcast.hub import BroadcastHub
from pagesync.core.broadcast.transport import SnapshotTransport
from pagesync.core.contracts.element import PageElement
from pagesync.core.contracts.update import RealtimeUpdate
from pagesync.core.errors import PageSyncError
from pagesync.core.snapshot.consumer import SnapshotConsumer
from pagesync.core.snapshot.medium import FileMedium, MemoryMedium, StorageMedium
from pagesync.core.snapshot.store import DocumentSnapshot, SnapshotStore
from pagesync.core.tree import create_default_elements, element_count
from pagesync.pipelines.editor import EditorSession

# --------------------------------------------------------------------------- #
# Environment Setup
# --------------------------------------------------------------------------- #
env_path = Path(".env")
if env_path.exists():
    load_dotenv(env_path)
    print("✅ Loaded .env file")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)


def main() -> None:
    """Execute the smoke test workflow."""
    parser = argparse.ArgumentParser(description="Run pagesync Smoke Test")
    parser.add_argument("--dir", "-d", type=str, help="Use a FileMedium in this directory")
    args = parser.parse_args()

    medium: StorageMedium = FileMedium(Path(args.dir)) if args.dir else MemoryMedium()
    print(f"\n📦 Medium: {type(medium).__name__}")

    # 1. Contexts
    hub = BroadcastHub(name="editor")
    hub.subscribe(lambda u: print(f"  📣 {u.subject}/{u.action} at {u.timestamp}"))
    editor_store = SnapshotStore(medium, context="editor")
    editor = EditorSession(
        editor_store,
        hub,
        create_default_elements("Smoke Test"),
        relays=[SnapshotTransport(editor_store)],
    )

    def on_preview(document: DocumentSnapshot | None) -> None:
        count = element_count(document.elements) if document is not None else 0
        print(f"  👀 preview re-rendered ({count} elements)")

    preview_store = SnapshotStore(medium, context="preview")
    preview = SnapshotConsumer(preview_store, on_change=on_preview)
    SnapshotTransport(preview_store).listen(
        lambda u: print(f"  📨 preview received {u.subject}/{u.action}")
    )

    # 2. Execution Phase
    try:
        with preview:
            editor.sync()
            column_id = editor.elements[0].children[0].id
            editor.add_element(
                PageElement(
                    id="smoke-text",
                    kind="widget",
                    widget_type="text-editor",
                    children=(),
                    content={"text": "Edited from the smoke script"},
                ),
                parent_id=column_id,
            )
            rejected = editor.add_element(
                PageElement(id="smoke-text", kind="widget", widget_type="text", children=()),
                parent_id=column_id,
            )
            print(f"  🚫 duplicate rejected: {rejected.validation.by_field()}")
            editor.undo()
    except PageSyncError as exc:
        print(f"\n❌ Synchronization failed: {exc}")
        return

    # 3. Inspection Phase
    print("\n" + "=" * 60)
    print("✅ Smoke run finished")
    print("=" * 60)
    history: tuple[RealtimeUpdate, ...] = hub.history()
    print(f"  - updates published: {len(history)}")
    print(f"  - editor elements:   {element_count(editor.elements)}")
    print(f"  - preview elements:  {element_count(preview.elements)}")
    print(f"  - redo available:    {editor.redo_description()}")


if __name__ == "__main__":
    main()
