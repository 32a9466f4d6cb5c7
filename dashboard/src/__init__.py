"""
Rectifier dashboard package.

Serves live voltage/current telemetry for the hard and soft rectifier
groups and the facility work log. Historical rows and change notifications
come from the hosted PostgreSQL database; this package keeps the in-memory
view state and exposes it as JSON snapshots.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""
