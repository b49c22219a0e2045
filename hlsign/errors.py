"""
Centralized Exceptions
Error taxonomy for the signing pipeline and structured error helpers.
"""

import re
from typing import Dict, Any, Optional


class HLSignError(Exception):
    """Base exception for the signing pipeline."""

    def __init__(self, message: str, error_code: str = "UNKNOWN", details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class PrecisionError(HLSignError, ValueError):
    """Numeric value is not exactly representable at the required precision."""

    def __init__(self, message: str = "Value loses precision", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "PRECISION", details)


class UnknownAssetError(HLSignError, LookupError):
    """Symbol is not present in the current metadata snapshot."""

    def __init__(self, message: str = "Unknown asset", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "UNKNOWN_ASSET", details)


class InvalidOrderTypeError(HLSignError, ValueError):
    """Order type (or grouping) is not one of the wire variants."""

    def __init__(self, message: str = "Invalid order type", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "INVALID_ORDER_TYPE", details)


class UnsupportedSignerError(HLSignError, TypeError):
    """Signing identity cannot produce typed-data signatures."""

    def __init__(self, message: str = "Signer does not support typed data", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "UNSUPPORTED_SIGNER", details)


class MalformedSignatureError(HLSignError, ValueError):
    """Raw signature is not exactly 65 bytes."""

    def __init__(self, message: str = "Malformed signature", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "MALFORMED_SIGNATURE", details)


class InvalidAddressError(HLSignError, ValueError):
    """Address is not 20 bytes of hex."""

    def __init__(self, message: str = "Invalid address", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "INVALID_ADDRESS", details)


class InvalidNonceError(HLSignError, ValueError):
    """Nonce does not fit an unsigned 64-bit integer."""

    def __init__(self, message: str = "Invalid nonce", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "INVALID_NONCE", details)


class InvalidActionError(HLSignError, ValueError):
    """Action type is unknown or routed to the wrong signing mode."""

    def __init__(self, message: str = "Invalid action", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "INVALID_ACTION", details)


class MetadataUnavailableError(HLSignError):
    """Symbol metadata could not be fetched."""

    def __init__(self, message: str = "Metadata unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "METADATA_UNAVAILABLE", details)


class ConfigurationError(HLSignError):
    """Configuration error."""

    def __init__(self, message: str = "Configuration error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIG_ERROR", details)


def sanitize_error_message(message: str) -> str:
    """Sanitize error messages to prevent information leakage."""
    sensitive_patterns = [
        "private_key", "secret", "password", "token", "mnemonic",
    ]

    sanitized = message
    for pattern in sensitive_patterns:
        sanitized = re.sub(re.escape(pattern), "***", sanitized, flags=re.IGNORECASE)

    return sanitized


def create_structured_error_response(error: Exception) -> Dict[str, Any]:
    """Create structured error response for logging and the transport layer."""
    if isinstance(error, HLSignError):
        return {
            "error_type": error.error_code,
            "message": sanitize_error_message(error.message),
            "details": error.details,
        }
    return {
        "error_type": "UNKNOWN_ERROR",
        "message": sanitize_error_message(str(error)),
        "details": {},
    }
