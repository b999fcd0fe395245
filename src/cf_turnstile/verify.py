"""Server-side verification of Turnstile tokens against siteverify."""

import logging
import uuid
from typing import Any, Callable, Optional

import httpx

from .errors import TransportError
from .script import SITEVERIFY_URL
from .types import ErrorCode, VerificationResponse, VerifyResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


def interpret_response(
    response: VerificationResponse,
    expected_action: Optional[str] = None,
    expected_cdata: Optional[str] = None,
) -> VerifyResult:
    """
    Turn a parsed siteverify response into a :class:`VerifyResult`.

    Checks, first match wins:
    1. Provider error codes are returned verbatim
    2. Action mismatch (only if ``expected_action`` is given) -> ``action-invalid``
    3. cData mismatch (only if ``expected_cdata`` is given) -> ``cdata-invalid``
    4. ``success`` true -> success
    5. Anything else -> ``internal-error``
    """
    if response.error_codes:
        return VerifyResult(success=False, error_codes=list(response.error_codes), response=response)

    if expected_action is not None and response.action != expected_action:
        return VerifyResult(
            success=False, error_codes=[ErrorCode.ACTION_INVALID.value], response=response
        )

    if expected_cdata is not None and response.cdata != expected_cdata:
        return VerifyResult(
            success=False, error_codes=[ErrorCode.CDATA_INVALID.value], response=response
        )

    if response.success:
        return VerifyResult(success=True, response=response)

    return VerifyResult(
        success=False, error_codes=[ErrorCode.INTERNAL_ERROR.value], response=response
    )


def _default_idempotency_key() -> str:
    return str(uuid.uuid4())


class CaptchaVerifier:
    """
    Verifies Turnstile tokens with Cloudflare's siteverify endpoint.

    Each :meth:`verify` call performs exactly one POST and never retries.
    A fresh idempotency key is sent every time, so a caller that retries the
    same submission is not reported as a duplicate.

    Example:
        >>> async with CaptchaVerifier(timeout=3.0) as verifier:
        ...     result = await verifier.verify(token, "203.0.113.7", secret, expected_action="login")
        ...     if not result:
        ...         print(result.error_codes)
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify_url: str = SITEVERIFY_URL,
        idempotency_key_factory: Optional[Callable[[], str]] = None,
    ):
        """
        Initialize the verifier.

        Args:
            http_client: Optional shared httpx client; one is created (and owned) if omitted
            timeout: Request timeout in seconds for an owned client (default: 5.0)
            verify_url: siteverify endpoint URL
            idempotency_key_factory: Returns a unique key per call (default: random UUID4)
        """
        self.verify_url = verify_url
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._idempotency_key_factory = idempotency_key_factory or _default_idempotency_key

    async def verify(
        self,
        token: str,
        client_ip: str,
        secret: str,
        expected_action: Optional[str] = None,
        expected_cdata: Optional[str] = None,
    ) -> VerifyResult:
        """
        Verify a token submitted by the browser.

        Args:
            token: Value of the ``cf-turnstile-response`` field
            client_ip: IP address of the visitor
            secret: Site secret key
            expected_action: Action the token must have been issued for
            expected_cdata: cData the token must carry

        Returns:
            VerifyResult with success flag and ordered error codes

        Raises:
            TransportError: On network failure, timeout or a malformed response
        """
        idempotency_key = self._idempotency_key_factory()
        form = {
            "secret": secret,
            "response": token,
            "remoteip": client_ip,
            "idempotency_key": idempotency_key,
        }
        logger.debug("Submitting Turnstile token for verification (idempotency_key=%s)", idempotency_key)

        try:
            http_response = await self._client.post(self.verify_url, data=form)
        except httpx.HTTPError as e:
            logger.error("Turnstile siteverify request failed: %s", e)
            raise TransportError(f"siteverify request failed: {e}") from e

        parsed = self._parse(http_response)
        result = interpret_response(parsed, expected_action, expected_cdata)

        if result.is_binding_mismatch:
            logger.warning("Turnstile binding check failed: %s", result.error_codes)
        elif not result.success:
            logger.warning("Turnstile verification rejected: %s", result.error_codes)
        return result

    @staticmethod
    def _parse(http_response: httpx.Response) -> VerificationResponse:
        try:
            body: Any = http_response.json()
            parsed = VerificationResponse.from_dict(body)
        except ValueError as e:
            logger.error(
                "Malformed siteverify response (status %s): %s", http_response.status_code, e
            )
            raise TransportError(
                f"Malformed siteverify response (status {http_response.status_code})"
            ) from e

        # an error status without provider codes tells us nothing about the token
        if http_response.is_error and not parsed.error_codes:
            logger.error("siteverify answered HTTP %s", http_response.status_code)
            raise TransportError(f"siteverify answered HTTP {http_response.status_code}")
        return parsed

    async def close(self) -> None:
        """Close the underlying HTTP client if this verifier created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "CaptchaVerifier":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
