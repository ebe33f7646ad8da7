"""
Custom exceptions for the Zoho sync.
"""

import json
from typing import Any, Optional


class ZohoSyncError(Exception):
    """Base class for all errors raised while syncing with Zoho"""

    pass


class UnknownEnumValue(ZohoSyncError):
    """Raised when a codec is given a value outside of its known set"""

    def __init__(self, codec: str, value: Any):
        self.codec = codec
        self.value = value
        super().__init__(f'Unknown value {value!r} for enum {codec}')


class MissingExternalIdentifier(ZohoSyncError):
    """Raised when updating a record that has never been synced to Zoho"""

    def __init__(self, module: str):
        self.module = module
        super().__init__(f'Cannot update {module} record without a zoho_id')


class CrmRequestError(ZohoSyncError):
    """Raised when the request to Zoho itself fails"""

    def __init__(self, module: str, operation: str, message: str, record_id: Optional[str] = None):
        self.module = module
        self.operation = operation
        self.message = message
        self.record_id = record_id
        id_part = f' with zoho id {record_id}' if record_id else ''
        super().__init__(f'{operation.capitalize()} request error for: {module}{id_part} with error: {message}')


class CrmRecordRejected(ZohoSyncError):
    """Raised when Zoho accepts the request but rejects the record"""

    def __init__(self, module: str, operation: str, message: str, details: Any = None):
        self.module = module
        self.operation = operation
        self.message = message
        self.details = details
        super().__init__(
            f'{message} on record {operation}. For module: {module} data: {json.dumps(details, default=str)}'
        )
