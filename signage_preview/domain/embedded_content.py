"""Sandboxed embedded web content.

State is derived from the config alone: ``derive_state`` maps the previous and
the new config to the state the widget should hold, including whether the
refresh timer has to be re-armed. ``EmbeddedContentWidget`` applies that state
and owns the timer.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
from urllib.parse import SplitResult, urlsplit

from signage_preview.delivery.schemas.body import EmbeddedContentConfig
from signage_preview.domain.visual_tree import VisualNode, placeholder
from signage_preview.infrastructure.scheduling.interval import IntervalTimer, Scheduler

logger = logging.getLogger(__name__)

NO_URL = "No URL provided"
INVALID_URL = "Invalid URL format"
UNAVAILABLE = "Web view unavailable"

FRAME_TITLE = "Web View Widget"
FRAME_ALLOW = "accelerometer; autoplay; clipboard-write; encrypted-media; gyroscope; picture-in-picture"

ALLOWED_SCHEMES = ("http", "https")
# schemes that always carry a host; the slashes after the colon are optional
HOST_SCHEMES = ("http", "https", "ws", "wss", "ftp")


class EmbedStatus(str, Enum):
    EMPTY = "empty"      # nothing evaluated yet
    INVALID = "invalid"
    VALID = "valid"


@dataclass(frozen=True)
class EmbeddedContentState:
    status: EmbedStatus = EmbedStatus.EMPTY
    validated_url: str = ""
    error: Optional[str] = None
    refresh_interval: Optional[int] = None  # ms, only while VALID
    restart_timer: bool = False


def parse_absolute_url(candidate: str) -> Optional[SplitResult]:
    """Parses ``candidate`` as an absolute URL the way a browser does, or returns None.

    Any scheme is accepted. Host schemes need a non-empty host, and the host is
    read past any slashes, so ``http:example.com`` means ``http://example.com``.
    """
    if not isinstance(candidate, str):
        return None
    text = candidate.strip()
    try:
        parts = urlsplit(text)
        if not parts.scheme:
            return None
        if parts.scheme in HOST_SCHEMES:
            rest = text[len(parts.scheme) + 1:].lstrip("/\\")
            parts = urlsplit(f"{parts.scheme}://{rest}")
            if not parts.hostname or any(ch.isspace() for ch in parts.netloc):
                return None
            parts.port  # raises on a malformed port
    except ValueError:
        return None
    return parts


def is_valid_url(candidate: str) -> bool:
    """True iff ``candidate`` parses as an absolute http(s) URL."""
    parts = parse_absolute_url(candidate)
    return parts is not None and parts.scheme in ALLOWED_SCHEMES


def _validate(config: EmbeddedContentConfig) -> EmbeddedContentState:
    if not config.url:
        return EmbeddedContentState(EmbedStatus.INVALID, error=NO_URL)
    if not is_valid_url(config.url):
        return EmbeddedContentState(EmbedStatus.INVALID, error=INVALID_URL)
    interval = config.update_interval if config.update_interval and config.update_interval > 0 else None
    return EmbeddedContentState(EmbedStatus.VALID, validated_url=config.url, refresh_interval=interval)


def derive_state(
    prev_config: Optional[EmbeddedContentConfig],
    new_config: EmbeddedContentConfig,
) -> EmbeddedContentState:
    state = _validate(new_config)
    if prev_config is None:
        restart = True
    else:
        prev = _validate(prev_config)
        restart = (prev.validated_url, prev.refresh_interval) != (state.validated_url, state.refresh_interval)
    return EmbeddedContentState(
        status=state.status,
        validated_url=state.validated_url,
        error=state.error,
        refresh_interval=state.refresh_interval,
        restart_timer=restart,
    )


class EmbeddedContentWidget:
    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        on_reload: Optional[Callable[[str], None]] = None,
    ):
        self._scheduler = scheduler
        self._on_reload = on_reload
        self._timer: Optional[IntervalTimer] = None
        self.config: Optional[EmbeddedContentConfig] = None
        self.state = EmbeddedContentState()
        self.frame_src = ""
        self.reload_count = 0

    @property
    def refreshing(self) -> bool:
        return self._timer is not None and self._timer.running

    def update(self, config: EmbeddedContentConfig) -> EmbeddedContentState:
        state = derive_state(self.config, config)
        self.config = config
        self.state = state
        self.frame_src = state.validated_url
        if state.restart_timer:
            self._stop_timer()
            if state.refresh_interval:
                self._timer = IntervalTimer(state.refresh_interval, self._reload, self._scheduler)
                self._timer.start()
        return state

    def _reload(self):
        # same source reassigned: a reload, not a navigation
        self.frame_src = self.frame_src
        self.reload_count += 1
        logger.debug(f"Reloading embedded content {self.frame_src}")
        if self._on_reload is not None:
            self._on_reload(self.frame_src)

    def _stop_timer(self):
        if self._timer is not None:
            self._timer.stop()
            self._timer = None

    def close(self):
        self._stop_timer()

    def render(self) -> VisualNode:
        if self.state.status is not EmbedStatus.VALID:
            return placeholder("webview-widget", self.state.error or UNAVAILABLE, "webview-error")
        frame = VisualNode(
            "iframe",
            "webview-iframe",
            attrs={
                "src": self.frame_src,
                "scrolling": "yes" if self.config.allow_scrolling else "no",
                "sandbox": self.config.sandbox,
                "title": FRAME_TITLE,
                "allow": FRAME_ALLOW,
            },
        )
        return VisualNode("div", "webview-widget", children=[frame])
