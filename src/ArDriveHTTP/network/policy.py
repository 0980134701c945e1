# === NAVMAP v1 ===
# {
#   "module": "ArDriveHTTP.network.policy",
#   "purpose": "HTTP retry and timeout policy constants.",
#   "sections": []
# }
# === /NAVMAP ===

"""HTTP retry and timeout policy constants.

Defines the retryable status set, the backoff growth factor, and the default
timeout budgets shared by the in-process transport and the isolated worker.
"""

# ============================================================================
# Retry Policy
# ============================================================================

#: Status codes treated as transient server/network conditions.
#: Covers request timeout, rate limiting, and gateway/origin failures
#: (including the Cloudflare 52x family and 598/599 network timeouts).
RETRY_STATUS_CODES = frozenset(
    {
        408,
        429,
        440,
        460,
        499,
        500,
        502,
        503,
        504,
        520,
        521,
        522,
        523,
        524,
        525,
        527,
        598,
        599,
    }
)

#: Multiplier applied per consumed retry: delay = base * 1.5 ** attempt
BACKOFF_FACTOR = 1.5

#: Default retry budget per logical request
DEFAULT_RETRIES = 8

#: Default base delay before the first retry (milliseconds)
DEFAULT_RETRY_DELAY_MS = 200


# ============================================================================
# Timeout Budgets (seconds, per physical attempt)
# ============================================================================

#: Connection establishment timeout
HTTP_CONNECT_TIMEOUT = 8.0

#: Receive timeout (time between data packets); also used for writes
HTTP_RECEIVE_TIMEOUT = 8.0


# ============================================================================
# Uploads
# ============================================================================

#: Chunk size used when uploading bytes with a progress callback
UPLOAD_CHUNK_SIZE = 64 * 1024


__all__ = [
    "RETRY_STATUS_CODES",
    "BACKOFF_FACTOR",
    "DEFAULT_RETRIES",
    "DEFAULT_RETRY_DELAY_MS",
    "HTTP_CONNECT_TIMEOUT",
    "HTTP_RECEIVE_TIMEOUT",
    "UPLOAD_CHUNK_SIZE",
]
