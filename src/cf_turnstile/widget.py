"""HTML fragment renderer for Turnstile widgets."""

import json
import logging
import uuid
from typing import Any, Callable, Mapping, Optional, Union

from .script import build_script_url
from .types import CallbackHooks, WidgetConfig

logger = logging.getLogger(__name__)

LOAD_POLL_INTERVAL_MS = 100
LOAD_TIMEOUT_MS = 10000
LOAD_FAILURE_MESSAGE = "Failed to load Captcha. Please reload the page"

# (attribute, turnstile option, JS function parameters), in emission order
_HOOK_SLOTS = (
    ("callback", "callback", "token"),
    ("error_callback", "error-callback", "errorCode"),
    ("before_interactive_callback", "before-interactive-callback", ""),
    ("after_interactive_callback", "after-interactive-callback", ""),
    ("unsupported_callback", "unsupported-callback", ""),
    ("timeout_callback", "timeout-callback", ""),
)


def _default_id_factory() -> str:
    return str(uuid.uuid4())


def _hook_statements(hooks: CallbackHooks) -> list[str]:
    statements = []
    for attr, option, args in _HOOK_SLOTS:
        body = getattr(hooks, attr)
        if body:
            statements.append(f"tsconfig['{option}'] = function ({args}) {{ {body} }}; ")
    return statements


def _script_json(value: Any) -> str:
    # keep "</script>" inside a string literal from closing the tag
    return json.dumps(value).replace("<", "\\u003c")


class WidgetRenderer:
    """
    Renders a self-contained HTML fragment that embeds a Turnstile widget.

    The fragment is a container ``<div>``, a ``<script>`` loading Turnstile in
    explicit mode and a bootstrap ``<script>`` that waits for the library,
    renders the widget into the container and then removes both scripts.
    Every render gets a fresh element id so several widgets can share a page.

    Example:
        >>> renderer = WidgetRenderer()
        >>> html = renderer.render({"siteKey": "1x00000000000000000000AA"})
    """

    def __init__(self, id_factory: Optional[Callable[[], str]] = None):
        """
        Initialize the renderer.

        Args:
            id_factory: Returns a unique id per call (default: random UUID4)
        """
        self._id_factory = id_factory or _default_id_factory

    def render(
        self,
        config: Union[WidgetConfig, Mapping[str, Any]],
        hooks: Optional[Union[CallbackHooks, Mapping[str, Any]]] = None,
    ) -> str:
        """
        Render the widget fragment.

        Args:
            config: Widget configuration (model or mapping)
            hooks: Optional JavaScript callback bodies, injected verbatim

        Returns:
            HTML fragment string

        Raises:
            ValidationError: If ``config`` or ``hooks`` is invalid; nothing is rendered
        """
        parsed_config = WidgetConfig.parse(config)
        statements: list[str] = []
        if hooks is not None:
            statements = _hook_statements(CallbackHooks.parse(hooks))

        elem_id = f"cf-{self._id_factory()}"
        script_url = build_script_url("explicit")
        logger.debug("Rendering Turnstile widget %s", elem_id)

        cleanup = (
            f"document.getElementById('{elem_id}-cfscript').remove(); "
            f"document.getElementById('{elem_id}-script').remove();"
        )
        bootstrap = " ".join(
            [
                "var waitForTurnstile = async () => {",
                "let startTime = Date.now();",
                "while (typeof turnstile === 'undefined' && "
                f"Date.now() - startTime < {LOAD_TIMEOUT_MS}) {{",
                f"await new Promise(resolve => setTimeout(resolve, {LOAD_POLL_INTERVAL_MS}));",
                "}",
                "if (typeof turnstile === 'undefined') {",
                f"document.getElementById('{elem_id}').innerText = '{LOAD_FAILURE_MESSAGE}';",
                cleanup,
                "} else {",
                "turnstile.ready(() => { "
                f"let tsconfig = {_script_json(parsed_config.to_params())}; "
                f"{''.join(statements)}; "
                f"turnstile.render('#{elem_id}', tsconfig) }});",
                cleanup,
                "}",
                "};",
                "waitForTurnstile();",
            ]
        )

        return (
            f'<div id="{elem_id}"></div>'
            f'<script id="{elem_id}-cfscript" src="{script_url}"></script>'
            f'<script id="{elem_id}-script">{bootstrap}</script>'
        )


def render_widget(
    config: Union[WidgetConfig, Mapping[str, Any]],
    hooks: Optional[Union[CallbackHooks, Mapping[str, Any]]] = None,
) -> str:
    """Render a widget fragment with a default :class:`WidgetRenderer`."""
    return WidgetRenderer().render(config, hooks)
