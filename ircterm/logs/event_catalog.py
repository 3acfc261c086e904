"""Human-readable texts for structured log events.

Templates live in ``event_templates.json`` beside this module, grouped as
``{domain: {action: template}}``. Each template is a ``str.format`` pattern
over the context fields passed to ``log_event``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from importlib import resources
from typing import Any

TEMPLATES_RESOURCE = "event_templates.json"

EVENT_TEMPLATES: dict[tuple[str, str], str] = {}


def _flatten(raw: Any) -> dict[tuple[str, str], str]:
    if not isinstance(raw, dict):
        raise ValueError("event templates must be a JSON object")
    return {
        (domain, action): template
        for domain, actions in raw.items()
        if isinstance(actions, dict)
        for action, template in actions.items()
        if isinstance(template, str)
    }


def load_event_templates() -> dict[tuple[str, str], str]:
    """Read the packaged catalog; a broken catalog yields a single load_error entry."""
    source = resources.files(__package__).joinpath(TEMPLATES_RESOURCE)
    try:
        return _flatten(json.loads(source.read_text(encoding="utf-8")))
    except FileNotFoundError:
        return {("app", "load_error"): "Event templates file missing"}
    except (OSError, ValueError) as e:
        return {("app", "load_error"): f"Failed to load event templates: {e}"[:200]}


def reload_event_templates() -> None:
    global EVENT_TEMPLATES  # noqa: PLW0603
    EVENT_TEMPLATES = load_event_templates()


def render(domain: str, action: str, context: Mapping[str, object]) -> str | None:
    """Text for an event, or ``None`` when the catalog has no template for it.

    A template whose fields are not all in ``context`` is returned unformatted.
    """
    template = EVENT_TEMPLATES.get((domain, action))
    if template is None:
        return None
    try:
        return template.format(**context)
    except (KeyError, IndexError, ValueError):
        return template


reload_event_templates()

__all__ = ["EVENT_TEMPLATES", "load_event_templates", "reload_event_templates", "render"]
