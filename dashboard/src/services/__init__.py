"""
Backend services: bulk queries and change subscriptions.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-010)
"""
