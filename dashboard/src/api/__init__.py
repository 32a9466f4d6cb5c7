"""
FastAPI presentation seam for the dashboard views.

CHANGELOG:
- 2026-10-16: Initial creation (STORY-012)
"""
