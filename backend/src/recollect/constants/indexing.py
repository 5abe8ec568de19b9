"""Index synchronization configuration."""

# =============================================================================
# Background Sync
# =============================================================================
# Writes to todos and memories trigger re-indexing in the background. Each
# sync is abandoned after SYNC_TIMEOUT_SECONDS.

SYNC_TIMEOUT_SECONDS = 10.0

# =============================================================================
# Backfill
# =============================================================================

BACKFILL_MEMORY_LIMIT = 1000
