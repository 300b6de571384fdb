from .codec import WireCodec
from .connection import ApiConnection, CsrfTokenCache
from .editor import WikibaseDataEditor
from .errors import (
    EditConflict,
    InconsistentId,
    InvalidStatementGroup,
    MalformedId,
    MalformedResponse,
    MaxlagError,
    MediaWikiApiError,
    RateLimitExceeded,
    TagRejected,
    TokenError,
    UnsupportedWireType,
    WikibaseError,
    WireDecodeError,
)
from .reduction import EditPlan, RandomGuidGenerator, reduce_update

__all__ = [
    "ApiConnection",
    "CsrfTokenCache",
    "EditConflict",
    "EditPlan",
    "InconsistentId",
    "InvalidStatementGroup",
    "MalformedId",
    "MalformedResponse",
    "MaxlagError",
    "MediaWikiApiError",
    "RandomGuidGenerator",
    "RateLimitExceeded",
    "TagRejected",
    "TokenError",
    "UnsupportedWireType",
    "WikibaseDataEditor",
    "WikibaseError",
    "WireCodec",
    "WireDecodeError",
    "reduce_update",
]
