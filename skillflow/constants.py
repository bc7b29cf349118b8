"""Shared defaults for skillflow."""

DEFAULT_RETRY_BUDGET = 2
DEFAULT_STATE_DIR = "workflow-state"
DEFAULT_HISTORY_DIR = "workflow-history"
DEFAULT_CLEANUP_MAX_AGE_DAYS = 7
MAX_WAIT_SECONDS = 300.0
