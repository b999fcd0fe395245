"""Turnstile settings loaded from the environment via pydantic-settings."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .script import SITEVERIFY_URL
from .verify import DEFAULT_TIMEOUT

DEFAULT_SCRIPT_PATH = "/cf-turnstile.js"


class TurnstileSettings(BaseSettings):
    """Turnstile settings.

    Every field can be set from a ``TURNSTILE_``-prefixed environment
    variable, e.g. ``TURNSTILE_SECRET_KEY``. ``server_mode`` enables the
    script redirect route at ``script_path`` when mounted on a FastAPI app.
    """

    model_config = SettingsConfigDict(env_prefix="TURNSTILE_", env_file=".env", extra="ignore")

    secret_key: Optional[str] = None
    site_key: Optional[str] = None
    timeout: float = Field(DEFAULT_TIMEOUT, gt=0)
    server_mode: bool = False
    script_path: str = Field(DEFAULT_SCRIPT_PATH, pattern=r"^/")
    verify_url: str = SITEVERIFY_URL
