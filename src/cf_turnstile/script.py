"""Turnstile script URL builder."""

from typing import Literal, Optional

SCRIPT_URL = "https://challenges.cloudflare.com/turnstile/v0/api.js"
SITEVERIFY_URL = "https://challenges.cloudflare.com/turnstile/v0/siteverify"

RenderMode = Literal["implicit", "explicit"]

_RENDER_MODES = ("implicit", "explicit")


def build_script_url(
    mode: Optional[RenderMode] = None, on_load_function: Optional[str] = None
) -> str:
    """
    Build the URL of Turnstile's ``api.js`` script.

    A load callback only makes sense with explicit rendering, so passing
    ``on_load_function`` always switches the mode to ``"explicit"``.

    Args:
        mode: ``"implicit"`` (default) or ``"explicit"``
        on_load_function: Optional name of a global function Turnstile calls once loaded

    Returns:
        Script URL string

    Example:
        >>> build_script_url(on_load_function="onTurnstileLoad")
        'https://challenges.cloudflare.com/turnstile/v0/api.js?render=explicit&onload=onTurnstileLoad'
    """
    if mode is not None and mode not in _RENDER_MODES:
        raise ValueError(f"Invalid render mode: expected one of {_RENDER_MODES}, got {mode!r}")

    if on_load_function:
        mode = "explicit"

    url = f"{SCRIPT_URL}?render={mode or 'implicit'}"
    if on_load_function:
        url += f"&onload={on_load_function}"
    return url
