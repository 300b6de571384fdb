from __future__ import annotations

from typing import Any, Optional


class WikibaseError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class MalformedId(WikibaseError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__("MALFORMED_ID", message, details)


class InvalidStatementGroup(WikibaseError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__("INVALID_STATEMENT_GROUP", message, details)


class WireDecodeError(WikibaseError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None, code: str = "DECODE_ERROR") -> None:
        super().__init__(code, message, details)


class UnsupportedWireType(WireDecodeError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message, details, code="UNSUPPORTED_WIRE_TYPE")


class InconsistentId(WireDecodeError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message, details, code="INCONSISTENT_ID")


class MalformedResponse(WikibaseError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__("MALFORMED_RESPONSE", message, details)


class MediaWikiApiError(WikibaseError):
    """Error reported by the API; code and info are kept exactly as sent."""

    def __init__(self, code: str, info: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(code, info, details)
        self.info = info


class MaxlagError(MediaWikiApiError):
    pass


class TokenError(MediaWikiApiError):
    pass


class EditConflict(MediaWikiApiError):
    pass


class TagRejected(MediaWikiApiError):
    pass


class RateLimitExceeded(WikibaseError):
    def __init__(self, attempts: int, last_error: Optional[MaxlagError] = None) -> None:
        super().__init__(
            "RATE_LIMIT_EXCEEDED",
            f"Server still lagged after {attempts} attempts.",
            {"attempts": attempts, "last_info": last_error.info if last_error else None},
        )
        self.attempts = attempts
        self.last_error = last_error


API_ERROR_CLASSES = {
    "maxlag": MaxlagError,
    "badtoken": TokenError,
    "notoken": TokenError,
    "editconflict": EditConflict,
    "tags-apply-not-allowed-one": TagRejected,
    "tags-apply-not-allowed-multi": TagRejected,
    "badtags": TagRejected,
}


def _first_error(payload: dict[str, Any]) -> Optional[dict[str, Any]]:
    error = payload.get("error")
    if isinstance(error, dict):
        return {"code": error.get("code"), "info": error.get("info") or error.get("text") or ""}
    errors = payload.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        first = errors[0]
        return {"code": first.get("code"), "info": first.get("text") or first.get("info") or ""}
    return None


def raise_for_api_error(payload: Any) -> None:
    """Raise the matching MediaWikiApiError subclass if the payload reports an error."""
    if not isinstance(payload, dict):
        return
    error = _first_error(payload)
    if error is None:
        return
    code = str(error["code"] or "unknown")
    error_class = API_ERROR_CLASSES.get(code, MediaWikiApiError)
    details = {"servedby": payload.get("servedby")} if payload.get("servedby") else None
    raise error_class(code, str(error["info"]), details)
