"""Ingestion layer.

Adapters that receive fleet snapshots from the controller, validate them at
the boundary and turn them into store updates plus derived events.
"""

from liftsync.ingestion.snapshot import SnapshotIngestor, diff_units, parse_snapshot

__all__ = ["SnapshotIngestor", "diff_units", "parse_snapshot"]
