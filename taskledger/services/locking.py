import threading

# Serializes check-then-write sequences within this process. Writers in other
# processes are caught by the store: row versions reject stale saves and the
# active administrator rows are locked while a user update runs.
WRITE_LOCK = threading.RLock()
