"""FastAPI surface for the pharmacy finder."""
