from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    INTEGRITY = "integrity"
    DECODE_FALLBACK = "decode_fallback"


class IndexerError(Exception):
    """Base class for fatal resolution errors"""
    kind: ErrorKind

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.details = details


class ValidationError(IndexerError):
    """Malformed address or hash, raised before any I/O"""
    kind = ErrorKind.VALIDATION


class NotFoundError(IndexerError):
    """Transaction, receipt or block could not be obtained from the node"""
    kind = ErrorKind.NOT_FOUND


class IntegrityError(IndexerError):
    """Decoded events do not match the raw receipt logs"""
    kind = ErrorKind.INTEGRITY


@dataclass
class DecodeFallback:
    """A log recorded as a raw event because no decoder was available"""
    address: str
    log_index: Optional[int]
    block_number: Optional[int]
    kind: ErrorKind = ErrorKind.DECODE_FALLBACK


@dataclass
class FetchResult:
    data: Optional[Dict[str, Any]] = None
    error: Optional[IndexerError] = None
    warnings: List[DecodeFallback] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        if self.error is not None:
            return self.error.kind
        if self.warnings:
            return ErrorKind.DECODE_FALLBACK
        return None
