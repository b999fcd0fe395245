"""Exception hierarchy for Turnstile rendering and verification."""

from typing import Any, Optional, Sequence


class TurnstileError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(TurnstileError, ValueError):
    """Widget configuration or callback hooks failed validation.

    Raised before any HTML is produced. ``field`` names the first offending
    field as the caller spelled it (e.g. ``siteKey``), ``details`` carries the
    full list of validation problems.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[list[dict[str, Any]]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details or []


class ProviderError(TurnstileError):
    """Cloudflare rejected the token with one or more error codes.

    The codes are kept verbatim and in the order the provider returned them.
    """

    def __init__(self, error_codes: Sequence[str]):
        self.error_codes = list(error_codes)
        super().__init__(f"Turnstile verification failed: {', '.join(self.error_codes)}")


class BindingMismatchError(ProviderError):
    """The token verified, but its action or cData did not match the expected value."""


class TransportError(TurnstileError):
    """The siteverify endpoint could not be reached or answered with garbage.

    Distinct from :class:`ProviderError`: these failures are usually safe to retry.
    """
