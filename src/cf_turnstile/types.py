"""Type definitions for Turnstile widgets and verification results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Mapping, Optional, Type, TypeVar, Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import BindingMismatchError, ProviderError, ValidationError

# JavaScript's \w is ASCII-only; Python's is not.
_WORD = r"[A-Za-z0-9_-]"

_Model = TypeVar("_Model", bound="_TurnstileModel")


class _TurnstileModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_none(cls, data: Any) -> Any:
        # None means "not supplied" so the field falls back to its default
        if isinstance(data, Mapping):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @classmethod
    def parse(cls: Type[_Model], data: Union[_Model, Mapping[str, Any]]) -> _Model:
        """Validate ``data`` into a model, raising :class:`ValidationError` on failure."""
        if isinstance(data, cls):
            return data
        try:
            return cls.model_validate(data)
        except pydantic.ValidationError as e:
            errors = e.errors(include_url=False)
            first = errors[0] if errors else {}
            loc = first.get("loc") or ()
            field_name = str(loc[0]) if loc else None
            raise ValidationError(
                f"Invalid {cls.__name__}: {field_name or 'input'}: {first.get('msg', 'invalid value')}",
                field=field_name,
                details=[dict(err) for err in errors],
            ) from e


class WidgetConfig(_TurnstileModel):
    """Turnstile widget configuration.

    Field names accept both the snake_case attribute name and the camelCase
    alias used by Turnstile's own documentation.
    """

    site_key: str = Field(alias="siteKey", max_length=255)
    action: Optional[str] = Field(None, max_length=32, pattern=rf"^{_WORD}{{1,32}}$")
    c_data: Optional[str] = Field(None, alias="cData", max_length=255, pattern=rf"^{_WORD}{{1,255}}$")
    size: Literal["normal", "compact"] = "normal"
    appearance: Literal["always", "execute", "interaction-only"] = "interaction-only"
    theme: Literal["light", "dark", "auto"] = "auto"
    language: str = Field("auto", pattern=r"^(auto|[a-z]{2}(-[A-Z]{2})?)$")
    tabindex: int = Field(0, ge=-100, le=9999, strict=True)
    response_field_name: str = Field("cf-turnstile-response", alias="responseFieldName")
    refresh_expired: Literal["auto", "manual", "never"] = Field("auto", alias="refreshExpired")
    retry: Literal["auto", "never"] = "auto"
    retry_interval: int = Field(8000, alias="retryInterval", gt=0, le=899999, strict=True)

    def to_params(self) -> dict[str, Union[str, int]]:
        """
        Build the parameter mapping passed to ``turnstile.render``.

        ``sitekey`` is always present; any other field whose value is falsy
        (including ``tabindex=0``) is left out rather than emitted empty.
        """
        params: dict[str, Union[str, int]] = {"sitekey": self.site_key}
        optional = (
            ("action", self.action),
            ("cData", self.c_data),
            ("size", self.size),
            ("appearance", self.appearance),
            ("theme", self.theme),
            ("language", self.language),
            ("tabindex", self.tabindex),
            ("response-field-name", self.response_field_name),
            ("refresh-expired", self.refresh_expired),
            ("retry", self.retry),
            ("retry-interval", self.retry_interval),
        )
        for name, value in optional:
            if value:
                params[name] = value
        return params


class CallbackHooks(_TurnstileModel):
    """Client-side JavaScript bodies for the widget's callbacks.

    Each value is inserted verbatim into the generated script; only pass
    code you trust.
    """

    callback: Optional[str] = Field(None, max_length=255)
    error_callback: Optional[str] = Field(None, alias="errorCallback", max_length=255)
    before_interactive_callback: Optional[str] = Field(
        None, alias="beforeInteractiveCallback", max_length=255
    )
    after_interactive_callback: Optional[str] = Field(
        None, alias="afterInteractiveCallback", max_length=255
    )
    unsupported_callback: Optional[str] = Field(None, alias="unsupportedCallback", max_length=255)
    timeout_callback: Optional[str] = Field(None, alias="timeoutCallback", max_length=255)


class ErrorCode(str, Enum):
    """Error codes returned by siteverify, plus two raised locally."""

    MISSING_INPUT_SECRET = "missing-input-secret"
    INVALID_INPUT_SECRET = "invalid-input-secret"
    MISSING_INPUT_RESPONSE = "missing-input-response"
    INVALID_INPUT_RESPONSE = "invalid-input-response"
    INVALID_WIDGET_ID = "invalid-widget-id"
    INVALID_PARSED_SECRET = "invalid-parsed-secret"
    BAD_REQUEST = "bad-request"
    TIMEOUT_OR_DUPLICATE = "timeout-or-duplicate"
    INTERNAL_ERROR = "internal-error"
    # local binding checks
    CDATA_INVALID = "cdata-invalid"
    ACTION_INVALID = "action-invalid"


ERROR_CODE_DESCRIPTIONS: dict[str, str] = {
    ErrorCode.MISSING_INPUT_SECRET.value: "The secret parameter was not passed.",
    ErrorCode.INVALID_INPUT_SECRET.value: "The secret parameter was invalid or did not exist.",
    ErrorCode.MISSING_INPUT_RESPONSE.value: "The response parameter was not passed.",
    ErrorCode.INVALID_INPUT_RESPONSE.value: "The response parameter is invalid or has expired.",
    ErrorCode.INVALID_WIDGET_ID.value: (
        "The widget ID extracted from the parsed site secret key was invalid or did not exist."
    ),
    ErrorCode.INVALID_PARSED_SECRET.value: (
        "The secret extracted from the parsed site secret key was invalid."
    ),
    ErrorCode.BAD_REQUEST.value: "The request was rejected because it was malformed.",
    ErrorCode.TIMEOUT_OR_DUPLICATE.value: (
        "The response parameter has already been validated before."
    ),
    ErrorCode.INTERNAL_ERROR.value: (
        "An internal error happened while validating the response. The request can be retried."
    ),
    ErrorCode.CDATA_INVALID.value: (
        "The cData passed in does not match the cData returned from the verification."
    ),
    ErrorCode.ACTION_INVALID.value: (
        "The action passed in does not match the action returned from the verification."
    ),
}

_BINDING_CODES = (ErrorCode.ACTION_INVALID.value, ErrorCode.CDATA_INVALID.value)


@dataclass
class VerificationResponse:
    """Parsed body of a siteverify response."""

    success: bool
    error_codes: list[str] = field(default_factory=list)
    challenge_ts: Optional[str] = None
    hostname: Optional[str] = None
    action: Optional[str] = None
    cdata: Optional[str] = None
    metadata: Optional[dict] = None

    @classmethod
    def from_dict(cls, data: Any) -> "VerificationResponse":
        """
        Parse a decoded siteverify JSON body.

        Raises:
            ValueError: If the body is not shaped like a siteverify response
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

        success = data.get("success")
        if not isinstance(success, bool):
            raise ValueError(f"'success' must be a boolean, got {success!r}")

        error_codes = data.get("error-codes") or []
        if not isinstance(error_codes, list) or not all(isinstance(c, str) for c in error_codes):
            raise ValueError(f"'error-codes' must be a list of strings, got {error_codes!r}")

        return cls(
            success=success,
            error_codes=list(error_codes),
            challenge_ts=data.get("challenge_ts"),
            hostname=data.get("hostname"),
            action=data.get("action"),
            cdata=data.get("cdata"),
            metadata=data.get("metadata"),
        )


@dataclass
class VerifyResult:
    """Result of verifying a Turnstile token.

    ``success`` is True only when the provider accepted the token and every
    requested binding check passed; otherwise ``error_codes`` holds the reasons.
    """

    success: bool
    error_codes: list[str] = field(default_factory=list)
    response: Optional[VerificationResponse] = None

    def __bool__(self) -> bool:
        return self.success

    @property
    def is_binding_mismatch(self) -> bool:
        return (
            not self.success
            and len(self.error_codes) == 1
            and self.error_codes[0] in _BINDING_CODES
        )

    def raise_for_failure(self) -> "VerifyResult":
        """
        Raise if verification failed, otherwise return self.

        Raises:
            BindingMismatchError: The action or cData check failed
            ProviderError: Cloudflare reported error codes
        """
        if self.success:
            return self
        if self.is_binding_mismatch:
            raise BindingMismatchError(self.error_codes)
        raise ProviderError(self.error_codes)
