"""Structured event logger.

Handlers are installed by :mod:`ircterm.logging_config`; this module only
shapes messages so that every record starts with a fixed-width
``[server#channel]`` column.
"""

from __future__ import annotations

import logging
import os

from . import event_catalog


class ClientLogger:
    def __init__(self, name: str = "ircterm") -> None:
        # Fixed width for event name column when in debug (alignment)
        self._event_name_width = 32
        self.logger = logging.getLogger(name)

    def log_event(
        self,
        domain: str,
        action: str,
        level: int = logging.INFO,
        human: str | None = None,
        **kwargs: object,
    ) -> None:
        event_name = f"{domain}_{action}".lower()
        human_text = human
        derived = False
        if human_text is None:
            human_text = event_catalog.render(domain, action, kwargs)
        if human_text is None:
            human_text = f"{domain.replace('_', ' ')}: {action.replace('_', ' ')}"
            derived = True
        kwargs.setdefault("_human_text", human_text)
        if derived:
            kwargs.setdefault("derived", True)
        self._log(level, event_name, **kwargs)

    def _log(self, level: int, event_name: str, **kwargs: object) -> None:
        kw: dict[str, object] = dict(kwargs)  # copy for mutation in extract
        server, channel, human_text = self._extract_reserved(kw)
        prefix = self._build_prefix(server, channel)
        if self._is_debug_enabled():
            msg = self._build_debug_message(
                event_name, prefix, human_text, kw, self._event_name_width
            )
        else:
            msg = f"{prefix} {human_text or event_name}"
        self.logger.log(level, msg)

    @staticmethod
    def _is_debug_enabled() -> bool:
        return os.environ.get("DEBUG", "false").lower() in ("true", "1", "yes")

    @staticmethod
    def _extract_reserved(
        kwargs: dict[str, object],
    ) -> tuple[str | None, str | None, str | None]:
        server_o = kwargs.pop("server", None)
        channel_o = kwargs.pop("channel", None)
        human_text_o = kwargs.pop("_human_text", None)
        server = server_o if isinstance(server_o, str) else None
        channel = channel_o if isinstance(channel_o, str) else None
        human_text = human_text_o if isinstance(human_text_o, str) else None
        return server, channel, human_text

    @staticmethod
    def _build_prefix(server: str | None, channel: str | None) -> str:
        label = server or "client"
        core = f"{label}{channel}" if channel else label
        padded = core.ljust(24)[:24]
        return f"[{padded}]"

    @staticmethod
    def _build_debug_message(
        event_name: str,
        prefix: str,
        human_text: str | None,
        kwargs: dict[str, object],
        width: int,
    ) -> str:
        context = ", ".join(f"{k}={v}" for k, v in kwargs.items())
        if len(event_name) <= width:
            ev = event_name.ljust(width)
        else:  # truncate but keep rightmost indicator
            ev = event_name[: width - 1] + "…"
        base = f"{ev} {prefix}"
        if human_text:
            base = f"{base} {human_text}"
        if context:
            base = f"{base} ({context})"
        return base


logger = ClientLogger()
