"""HTTP surface for pagesync (FastAPI)."""
