"""Core utilities and shared application primitives.

Error codes, JSON responses, request middleware and small reusable helpers
(configuration, HTTP client, retry, subprocess, UUID).
"""

from .errorcode import ERR_INVALID_REQUEST_PARAMS, ERR_UNKNOWN_ERROR, ErrorCode, ErrorCodeError, UsageError
from .middleware import DebugLogRequestData, RecoverJSONResponse, classify_exception, install_recovery
from .response import response_error, response_ok
from .validation import is_valid_uuid, is_valid_uuid_param, new_uuid4_string
