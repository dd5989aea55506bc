"""HTTP constants for the fetch helper.

Centralizes status ranges and defaults shared across modules.
"""

# HTTP Status Code Ranges
HTTP_STATUS_INTERNAL_SERVER_ERROR = 500
HTTP_STATUS_SERVER_ERROR_MIN = 500
HTTP_STATUS_SERVER_ERROR_MAX = 600

# Status reported when no HTTP status exists (cancelled before request,
# transport-level exception)
NO_STATUS = -1

# Retry defaults
DEFAULT_RETRY_ENABLED = True
DEFAULT_MAX_RETRY = 3
DEFAULT_RETRY_DELAY_MS = 500

# Request defaults
DEFAULT_METHOD = "GET"
DEFAULT_UPLOAD_METHOD = "POST"
DEFAULT_CREDENTIALS = "include"
DEFAULT_CONTENT_TYPE = "application/json"
FORM_URL_ENCODED = "application/x-www-form-urlencoded"

# Chunk size for streamed upload bodies
DEFAULT_UPLOAD_CHUNK_SIZE = 64 * 1024
