"""HTTP routers for pagesync."""
