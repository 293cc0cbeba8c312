"""Exceptions raised by the Gemini adapter"""
from typing import Optional


class GeminiError(Exception):
    """Base exception for Gemini adapter errors"""
    pass


class GeminiAPIError(GeminiError):
    """The exchange answered with its own error envelope"""

    def __init__(self, reason: str, message: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.message = message


class UnsupportedOperationError(GeminiError):
    """Requested operation cannot be fulfilled by the exchange"""
    pass


class AuthenticationRequiredError(GeminiError):
    """Private endpoint called without credentials"""
    pass
