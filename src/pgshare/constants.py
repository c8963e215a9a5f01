"""Constants for pgshare."""

import uuid

# Subprocess timeouts (seconds)
CTL_TIMEOUT = 120  # pg_ctl init/start/stop with -w can take a while
VERSION_TIMEOUT = 10

# Startup backoff bounds (milliseconds) when another process holds the lock
BACKOFF_MIN_MS = 200
BACKOFF_MAX_MS = 1000

# Files inside a cluster data directory
VERSION_FILE = "PG_VERSION"
PID_FILE = "postmaster.pid"
LOG_FILE = "postmaster.log"

# Lock files live in the temp dir as .pgshare.<uuid>
LOCK_FILE_PREFIX = ".pgshare."
LOCK_NAMESPACE = uuid.UUID("4a8f1c0e-6b7d-5e2a-9c3f-2d1e8b7a6f50")

CONFIG_FILE = "pgshare.toml"
