# Logger Configuration
NAMESPACE = "faas_http"
"""Application logger namespace for all components."""

PLUGIN_NAME = "http"
"""Default name and type of the HTTP plugin."""

PACKAGE_NAME = "faas-http"
"""Distribution name registered as a deploy-time dependency."""

# Environment Variables
LOG_LEVEL_ENV = "LOG_LEVEL"
"""Environment variable holding the log level."""

SESSION_SECRET_ENV = "SESSION_SECRET"
"""Environment variable holding the session signing secret."""

FUNC_MODULE_ENV = "FUNC_MODULE"
"""Environment variable naming the module that exports ``func``."""

DEFAULT_FUNC_MODULE = "index"
"""Module loaded when FUNC_MODULE is not set."""

# Response Defaults
DEFAULT_HEADERS = {
    "Content-Type": "application/json; charset=utf-8",
    "Cache-Control": "no-cache, no-store",
}
"""Headers every response starts from."""

CONTENT_TYPES = {
    "plain": "text/plain",
    "html": "text/html",
    "xml": "application/xml",
    "csv": "text/csv",
    "css": "text/css",
    "javascript": "application/javascript",
    "json": "application/json",
    "jsonp": "application/javascript",
}
"""Short names accepted by HttpContext.set_content_type."""

# Compression
COMPRESSION_MIN_LENGTH = 1024
"""Bodies shorter than this are never compressed."""

ACCEPTED_ENCODINGS = ["br", "gzip", "deflate"]
"""Supported Content-Encoding values, in preference order."""

# Cookies
EXPIRED_COOKIE_DATE = "Thu, 01 Jan 1970 00:00:01 GMT"
"""Expiry used to delete a cookie on the client."""

DEFAULT_COOKIE_MAX_AGE = 31536000
"""One year, in seconds."""
