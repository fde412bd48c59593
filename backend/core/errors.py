from typing import Any, Dict, Optional


class KioskError(Exception):
    """Base error surfaced to the HTTP boundary as ``{"error", "kind"}``."""

    status_code = 500
    kind = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "kind": self.kind}


class ValidationError(KioskError):
    status_code = 400
    kind = "validation_error"

    def __init__(self, field: Optional[str], message: str):
        super().__init__(f"{field}: {message}" if field else message)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["field"] = self.field
        return body


class NotFoundError(KioskError):
    status_code = 404
    kind = "not_found"


class StorageReadError(KioskError):
    kind = "storage_read_error"


class StorageWriteError(KioskError):
    kind = "storage_write_error"


class StorageFormatError(KioskError):
    kind = "storage_format_error"


class AssetCleanupError(KioskError):
    """Raised when a product's image cannot be removed during delete."""

    kind = "asset_cleanup_error"
