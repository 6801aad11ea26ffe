"""Domain errors for staging and confirming signups."""


class VerificationError(Exception):
    """Base class for signup verification errors."""


class ConfigurationError(VerificationError):
    """Missing or invalid verification options. Fatal to the call, never retried."""


class NoTempModelConfigured(ConfigurationError):
    """No staging destination was configured for temporary users."""

    def __init__(self, message: str = "No temporary user store configured") -> None:
        super().__init__(message)


class PersistenceError(VerificationError):
    """The persistence store failed. Propagated to the caller as-is."""


class DeliveryError(VerificationError):
    """The email notifier failed. The original exception is kept as __cause__."""


class IdentityConflict(VerificationError):
    """A staged or permanent record already exists for this identity.

    Raised by the stores; the verification service turns it into a ``None`` result.
    """

    def __init__(self, identity: str) -> None:
        super().__init__(f"Identity already staged or confirmed: {identity}")
        self.identity = identity


class TokenCollision(VerificationError):
    """A freshly minted token is already held by another staged record."""
