"""
FlavorPulse Store Module
========================

Modules:
    flavor_store  - FlavorStore interface and its PostgreSQL implementation
    synchronizer  - Idempotent sync of analysis results into the store
"""

from .flavor_store import FlavorStore, PostgresFlavorStore, DatabaseError, MAX_COMMENT_CHARS
from .synchronizer import ResultSynchronizer, SyncResult
