"""HTTP surface for the page pipeline (FastAPI)."""
