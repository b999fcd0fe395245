"""cf-turnstile - Render Cloudflare Turnstile widgets and verify their tokens."""

__version__ = "0.1.0"

from cf_turnstile.client import TurnstileClient
from cf_turnstile.config import TurnstileSettings
from cf_turnstile.errors import (
    BindingMismatchError,
    ProviderError,
    TransportError,
    TurnstileError,
    ValidationError,
)
from cf_turnstile.script import SCRIPT_URL, SITEVERIFY_URL, build_script_url
from cf_turnstile.types import (
    ERROR_CODE_DESCRIPTIONS,
    CallbackHooks,
    ErrorCode,
    VerificationResponse,
    VerifyResult,
    WidgetConfig,
)
from cf_turnstile.verify import CaptchaVerifier, interpret_response
from cf_turnstile.widget import WidgetRenderer, render_widget

__all__ = [
    "TurnstileClient",
    "TurnstileSettings",
    "WidgetRenderer",
    "render_widget",
    "CaptchaVerifier",
    "interpret_response",
    "build_script_url",
    "SCRIPT_URL",
    "SITEVERIFY_URL",
    "WidgetConfig",
    "CallbackHooks",
    "ErrorCode",
    "ERROR_CODE_DESCRIPTIONS",
    "VerificationResponse",
    "VerifyResult",
    "TurnstileError",
    "ValidationError",
    "ProviderError",
    "BindingMismatchError",
    "TransportError",
    "__version__",
]
