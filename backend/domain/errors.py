"""
Custom domain exceptions for consistent error handling.

These exceptions are mapped to HTTP status codes by the exception handler
in main.py. Registry operations raise the specific subclasses at the bottom
of this module; each one aborts the whole call.
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, details: dict | None = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details or {}


class NotFoundError(DomainError):
    """Resource not found (404)."""
    def __init__(self, resource_type: str, identifier: str, details: dict | None = None):
        message = f"{resource_type} not found: {identifier}"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)


class ValidationError(DomainError):
    """Validation error (400)."""
    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            message = f"Validation error on {field}: {message}"
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class PermissionDeniedError(DomainError):
    """Permission denied (403)."""
    def __init__(self, message: str = "Permission denied", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN, details=details)


class ConflictError(DomainError):
    """Resource conflict (409)."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_409_CONFLICT, details=details)


# ── Registry errors ─────────────────────────────────────────────────


class UnauthorizedError(PermissionDeniedError):
    """Caller is not the registry admin (403)."""
    def __init__(self, caller: str, operation: str):
        super().__init__(
            f"Only the registry admin may call {operation}",
            details={"caller": caller, "operation": operation},
        )


class TokenNotFoundError(NotFoundError):
    """Token ID was never minted (404)."""
    def __init__(self, token_id: int):
        super().__init__("Token", str(token_id), details={"token_id": token_id})


class NotBoundError(ConflictError):
    """Unbind on a token whose binding does not match its owner (409)."""
    def __init__(self, token_id: int):
        super().__init__(
            f"Token {token_id} is not bound to its owner",
            details={"token_id": token_id},
        )


class BoundTokenTransferDeniedError(PermissionDeniedError):
    """Transfer attempted while the token is bound to the sender (403)."""
    def __init__(self, token_id: int, from_wallet: str):
        super().__init__(
            f"Token {token_id} is soulbound and cannot be transferred",
            details={"token_id": token_id, "from": from_wallet},
        )


class NotOwnerOrApprovedError(PermissionDeniedError):
    """Caller is neither the owner, the approved wallet nor an operator (403)."""
    def __init__(self, token_id: int, caller: str):
        super().__init__(
            f"Caller is not token owner or approved for token {token_id}",
            details={"token_id": token_id, "caller": caller},
        )


class IncorrectOwnerError(ValidationError):
    """`from` does not own the token (400)."""
    def __init__(self, token_id: int, from_wallet: str):
        super().__init__(
            f"{from_wallet[:8]}... does not own token {token_id}",
            details={"token_id": token_id, "from": from_wallet},
        )


class InvalidAddressError(ValidationError):
    """Malformed address, or the zero address where it is not allowed (400)."""
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, field=field)


class IndexOutOfBoundsError(NotFoundError):
    """Enumeration index past the end (404)."""
    def __init__(self, index: int, size: int):
        super().__init__("Token index", str(index), details={"index": index, "size": size})


class RegistryNotInitializedError(NotFoundError):
    """Registry state row does not exist yet (404)."""
    def __init__(self):
        super().__init__("Registry", "not initialized")


class ConcurrentUpdateError(ConflictError):
    """Another writer changed the same rows first; nothing was applied (409)."""
    def __init__(self):
        super().__init__("Registry changed concurrently. Retry the call.")


# ── Authentication errors ───────────────────────────────────────────


class AuthenticationError(DomainError):
    """Missing or unusable credentials (401)."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED, details=details)
        self.headers = {"WWW-Authenticate": "Bearer"}


class AuthenticationRequiredError(AuthenticationError):
    def __init__(self):
        super().__init__("Authentication required. Provide Authorization: Bearer <token>.")


class AccessTokenExpiredError(AuthenticationError):
    def __init__(self):
        super().__init__("Access token expired.")


class InvalidAccessTokenError(AuthenticationError):
    def __init__(self):
        super().__init__("Invalid access token.")


class InvalidSignatureError(AuthenticationError):
    """Nonce signature does not verify against the wallet's public key."""
    def __init__(self, wallet: str):
        super().__init__("Invalid signature for wallet.", details={"wallet": wallet})


class InvalidChallengeError(ValidationError):
    """Unknown nonce, or one that was already exchanged for a token (400)."""
    def __init__(self):
        super().__init__("Invalid or already-used nonce.")


class ChallengeExpiredError(ValidationError):
    def __init__(self):
        super().__init__("Nonce expired. Request a new challenge.")


class AuthMisconfiguredError(DomainError):
    """JWT secret missing on the server (500)."""
    def __init__(self):
        super().__init__(
            "Server auth misconfigured (JWT secret missing).",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


class RateLimitExceededError(DomainError):
    """Too many requests from one client in the current window (429)."""
    def __init__(self, limit: int, window_seconds: int, retry_after: int):
        super().__init__(
            f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds. "
            "Try again later.",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details={"limit": limit, "window_seconds": window_seconds},
        )
        self.headers = {
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": "0",
        }
