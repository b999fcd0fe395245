"""FastAPI integration: script redirect route and token verification dependency."""

import logging
from typing import Literal, Optional

try:
    from fastapi import APIRouter, FastAPI, HTTPException, Query, Request
    from fastapi.responses import RedirectResponse
except ImportError:
    raise ImportError(
        "FastAPI is not installed. Install it with: pip install 'cf-turnstile[fastapi]'"
    )

from .config import DEFAULT_SCRIPT_PATH, TurnstileSettings
from .errors import TransportError
from .script import build_script_url
from .types import VerifyResult
from .verify import CaptchaVerifier

logger = logging.getLogger(__name__)

TOKEN_HEADER = "CF-Turnstile-Response"
CLIENT_IP_HEADER = "CF-Connecting-IP"

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def script_redirect_router(path: str = DEFAULT_SCRIPT_PATH) -> APIRouter:
    """
    Create a router that redirects ``GET <path>`` to the Turnstile script.

    Query parameters:
        method: ``implicit`` or ``explicit``
        onLoadFunction: Load callback name; forces ``method=explicit``

    Usage:
        app.include_router(script_redirect_router("/cf-turnstile.js"))
    """
    router = APIRouter()

    @router.get(path, status_code=303, response_class=RedirectResponse)
    async def turnstile_script(
        method: Optional[Literal["implicit", "explicit"]] = Query(
            None,
            description="Render the Turnstile widget implicitly or explicitly",
        ),
        on_load_function: Optional[str] = Query(
            None,
            alias="onLoadFunction",
            max_length=255,
            description="Function to call once Turnstile is ready to render",
        ),
    ) -> RedirectResponse:
        if on_load_function is not None:
            method = "explicit"
        return RedirectResponse(build_script_url(method, on_load_function), status_code=303)

    return router


def mount(app: FastAPI, settings: TurnstileSettings) -> None:
    """Register the script redirect route on ``app`` when ``settings.server_mode`` is on."""
    if settings.server_mode:
        app.include_router(script_redirect_router(settings.script_path))
        logger.info("Turnstile script redirect mounted at %s", settings.script_path)


class TurnstileVerify:
    """
    FastAPI dependency that verifies the Turnstile token of a request.

    The token is read from the ``CF-Turnstile-Response`` header, falling back
    to the widget's form field. The visitor IP is taken from
    ``CF-Connecting-IP`` when present, otherwise from the connection.

    Usage:
        from cf_turnstile.fastapi import TurnstileVerify

        turnstile = TurnstileVerify(secret="0x4AAA...", expected_action="login")

        @app.post("/login")
        async def login(captcha: VerifyResult = Depends(turnstile)):
            return {"ok": True}

    A verifier created here owns an httpx client; close it on shutdown:

        @asynccontextmanager
        async def lifespan(app):
            yield
            await turnstile.close()
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        verifier: Optional[CaptchaVerifier] = None,
        expected_action: Optional[str] = None,
        expected_cdata: Optional[str] = None,
        response_field_name: str = "cf-turnstile-response",
        auto_error: bool = True,
    ):
        """
        Initialize the verification dependency.

        Args:
            secret: Site secret key
            verifier: Verifier to use (default: new CaptchaVerifier, closed by close())
            expected_action: Action the token must be bound to
            expected_cdata: cData the token must be bound to
            response_field_name: Form field holding the token
            auto_error: If True, raise HTTPException on failure.
                        If False, return None instead.
        """
        if not secret:
            raise ValueError("'secret' must be provided")
        self.secret = secret
        self._owns_verifier = verifier is None
        self.verifier = verifier or CaptchaVerifier()
        self.expected_action = expected_action
        self.expected_cdata = expected_cdata
        self.response_field_name = response_field_name
        self.auto_error = auto_error

    async def close(self) -> None:
        """Close the verifier if this dependency created it."""
        if self._owns_verifier:
            await self.verifier.close()

    async def _extract_token(self, request: Request) -> Optional[str]:
        token = request.headers.get(TOKEN_HEADER)
        if token:
            return token

        content_type = request.headers.get("content-type", "")
        if content_type.startswith(_FORM_CONTENT_TYPES):
            form = await request.form()
            value = form.get(self.response_field_name)
            if isinstance(value, str) and value:
                return value
        return None

    async def __call__(self, request: Request) -> Optional[VerifyResult]:
        """
        Verify the request's Turnstile token.

        Returns:
            VerifyResult on success, None on failure when auto_error=False

        Raises:
            HTTPException: 400 without a token, 403 when rejected,
                           502 when siteverify is unreachable (auto_error=True)
        """
        token = await self._extract_token(request)
        if not token:
            if self.auto_error:
                raise HTTPException(status_code=400, detail="Missing Turnstile response token")
            return None

        client_ip = request.headers.get(CLIENT_IP_HEADER) or (
            request.client.host if request.client else ""
        )

        try:
            result = await self.verifier.verify(
                token,
                client_ip,
                self.secret,
                expected_action=self.expected_action,
                expected_cdata=self.expected_cdata,
            )
        except TransportError as e:
            if self.auto_error:
                raise HTTPException(
                    status_code=502, detail="Turnstile verification unavailable"
                ) from e
            return None

        if not result.success:
            if self.auto_error:
                raise HTTPException(
                    status_code=403,
                    detail={"error": "Turnstile verification failed", "error-codes": result.error_codes},
                )
            return None

        return result
