"""Exception types shared by the transit, KV and reconciliation layers."""
from typing import Any, Optional


class SecretsAsCodeError(Exception):
    """Base class for every error raised by vault-secrets-as-code."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class NotManagedError(SecretsAsCodeError):
    """The remote entry exists but is unowned or owned by another identity."""

    def __init__(self, key: str, owner: Optional[str] = None, reason: Optional[str] = None):
        message = f"{key!r} is not managed by this configuration"
        if reason:
            message += f": {reason}"
        elif owner is not None:
            message += f" (managed_by: {owner!r})"
        super().__init__(message, key=key)
        self.owner = owner
        self.reason = reason


class NotFoundError(SecretsAsCodeError):
    """Expected remote metadata or value is absent."""

    def __init__(self, key: str, what: str = "secret"):
        super().__init__(f"{what} not found at {key!r}", key=key)


class EncodingError(SecretsAsCodeError):
    """The transit engine answered without the field we asked for."""


class UnexpectedValueType(SecretsAsCodeError):
    """A live KV value is not a string and cannot be encrypted as-is."""

    def __init__(self, key: str, value: Any):
        super().__init__(
            f"value of {key!r} is a {type(value).__name__}, expected a string",
            key=key,
        )
        self.value_type = type(value).__name__


class TransportError(SecretsAsCodeError):
    """Vault could not be reached or rejected the request."""
