"""TurnstileClient - one object exposing script URLs, widget rendering and verification."""

from typing import Any, Mapping, Optional, Union

from .config import TurnstileSettings
from .script import RenderMode, build_script_url
from .types import CallbackHooks, VerifyResult, WidgetConfig
from .verify import CaptchaVerifier
from .widget import WidgetRenderer


class TurnstileClient:
    """
    Facade over :class:`WidgetRenderer` and :class:`CaptchaVerifier`.

    Holds an optional default site key (used when a widget config omits one)
    and a default secret (used when :meth:`verify` is called without one).

    Example:
        >>> async with TurnstileClient(secret_key="0x4AAA...", site_key="0x4AAA...") as turnstile:
        ...     html = turnstile.render_widget({"action": "login"})
        ...     result = await turnstile.verify(token, client_ip, expected_action="login")
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        site_key: Optional[str] = None,
        renderer: Optional[WidgetRenderer] = None,
        verifier: Optional[CaptchaVerifier] = None,
    ):
        """
        Initialize the client.

        Args:
            secret_key: Default secret for verification
            site_key: Default site key for rendered widgets
            renderer: Widget renderer (default: new WidgetRenderer)
            verifier: Token verifier (default: new CaptchaVerifier)
        """
        self.secret_key = secret_key
        self.site_key = site_key
        self.renderer = renderer or WidgetRenderer()
        self.verifier = verifier or CaptchaVerifier()

    @classmethod
    def from_settings(cls, settings: TurnstileSettings) -> "TurnstileClient":
        """Build a client from :class:`TurnstileSettings`."""
        verifier = CaptchaVerifier(timeout=settings.timeout, verify_url=settings.verify_url)
        return cls(
            secret_key=settings.secret_key,
            site_key=settings.site_key,
            verifier=verifier,
        )

    def get_script_url(
        self, method: Optional[RenderMode] = None, on_load_function: Optional[str] = None
    ) -> str:
        """Return the Turnstile script URL (see :func:`build_script_url`)."""
        return build_script_url(method, on_load_function)

    def render_widget(
        self,
        config: Union[WidgetConfig, Mapping[str, Any], None] = None,
        hooks: Optional[Union[CallbackHooks, Mapping[str, Any]]] = None,
    ) -> str:
        """
        Render a widget fragment.

        If ``config`` is a mapping without a site key, the client's default
        site key is filled in.

        Raises:
            ValidationError: If the config or hooks are invalid
        """
        if config is None:
            config = {}
        if (
            not isinstance(config, WidgetConfig)
            and self.site_key
            and config.get("siteKey") is None
            and config.get("site_key") is None
        ):
            config = {**config, "siteKey": self.site_key}
        return self.renderer.render(config, hooks)

    async def verify(
        self,
        token: str,
        client_ip: str,
        secret: Optional[str] = None,
        expected_action: Optional[str] = None,
        expected_cdata: Optional[str] = None,
    ) -> VerifyResult:
        """
        Verify a token, falling back to the client's default secret.

        Raises:
            ValueError: If no secret is given and none is configured
            TransportError: If siteverify cannot be reached or answers garbage
        """
        secret = secret or self.secret_key
        if not secret:
            raise ValueError("A secret key is required: pass 'secret' or configure 'secret_key'")
        return await self.verifier.verify(
            token, client_ip, secret, expected_action=expected_action, expected_cdata=expected_cdata
        )

    async def close(self) -> None:
        """Close the verifier's HTTP client."""
        await self.verifier.close()

    async def __aenter__(self) -> "TurnstileClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
