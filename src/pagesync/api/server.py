"""
ASGI Entry Point for the pagesync API.

This module exposes the `app` object required by ASGI servers (Uvicorn/Gunicorn).
It loads environment variables from `.env` before the application factory runs,
so settings that read os.environ see them.

Usage
-----
Run via the module entry point:
    $ python -m pagesync.api.server

Or via uvicorn directly:
    $ uvicorn pagesync.api.server:app --reload
"""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

# Load .env BEFORE importing anything that reads settings at import time.
load_dotenv(dotenv_path=Path(".env"))

from pagesync.api.app import create_app  # noqa: E402
from pagesync.core.settings import load_settings  # noqa: E402

app = create_app()


def main() -> None:
    """Run the API server locally for development."""
    cfg = load_settings()
    print(f"[Server] env={cfg.environment} snapshots={cfg.snapshot_dir} uploads={cfg.upload_dir}")
    uvicorn.run(
        "pagesync.api.server:app",
        host="0.0.0.0",
        port=8000,
        reload=cfg.is_dev,
        log_level=cfg.log_level.lower(),
    )


if __name__ == "__main__":
    main()
