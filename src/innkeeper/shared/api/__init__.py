"""
Shared API Layer
================

Response envelopes, schema base, the generic write pipeline and middleware.
"""

from innkeeper.shared.api.pipeline import WriteOperation, run_write_operation
from innkeeper.shared.api.responses import error_response, success_response

__all__ = [
    "WriteOperation",
    "run_write_operation",
    "error_response",
    "success_response",
]
