"""Model-reply validation package."""

from finai.validation.json_extraction import (
    MalformedJSONError,
    extract_json_array,
    extract_json_object,
    find_json_object,
)
from finai.validation.response_validator import (
    AccountNotFound,
    IncompleteTransactionData,
    InsufficientFunds,
    InvalidTransactionType,
    MalformedModelOutput,
    ModelReportedError,
    ResponseValidator,
    SameAccountTransfer,
    TransactionValidationError,
    normalize_category,
)

__all__ = [
    "MalformedJSONError",
    "extract_json_array",
    "extract_json_object",
    "find_json_object",
    "AccountNotFound",
    "IncompleteTransactionData",
    "InsufficientFunds",
    "InvalidTransactionType",
    "MalformedModelOutput",
    "ModelReportedError",
    "ResponseValidator",
    "SameAccountTransfer",
    "TransactionValidationError",
    "normalize_category",
]
