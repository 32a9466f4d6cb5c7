"""
Database models, engine setup and migrations.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-010)
"""
