from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from usm.runtime.errors import ApplyError

# ApplyError.code -> HTTP status
_APPLY_STATUS = {
    "forbidden": 403,
    "invalid_payload": 400,
    "invalid_state": 409,
    "not_found": 404,
}


@dataclass(frozen=True, slots=True)
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def not_found(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(404, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})

    def to_json(self) -> Dict[str, Any]:
        return {
            "ok": False,
            "error": {"code": self.code, "message": self.message, "details": dict(self.details)},
        }


def apply_error_status(e: ApplyError) -> int:
    return int(_APPLY_STATUS.get(str(e.code), 400))


def apply_error_json(e: ApplyError) -> Dict[str, Any]:
    return {
        "ok": False,
        "error": {"code": str(e.code), "reason": str(e.reason), "details": dict(e.details or {})},
    }
