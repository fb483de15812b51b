"""State/store layer.

This package is the single source of truth for the local fleet view:
the atomically replaced snapshot store, the pending-request set and the
side-effect events derived while updating them.
"""
