import logging
from concurrent.futures import Executor
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import BaseModel, ValidationError

from signage_preview.delivery.schemas.body import (
    WIDGET_CONFIGS,
    MediaZone,
    Template,
    TextWidgetConfig,
    TextZone,
    WidgetZone,
    Zone,
    parse_template,
    parse_zones,
)
from signage_preview.domain.embedded_content import EmbeddedContentWidget
from signage_preview.domain.qr_renderer import QRCodeRenderer
from signage_preview.domain.shape_renderer import render_shape
from signage_preview.domain.template_service import ZoneCompositor
from signage_preview.domain.visual_tree import VisualNode, placeholder
from signage_preview.infrastructure.scheduling.interval import Scheduler

logger = logging.getLogger(__name__)

INVALID_CONFIG = "Invalid widget configuration"
WIDGET_FAILED = "Widget unavailable"


def render_text_widget(config: TextWidgetConfig) -> VisualNode:
    if not config.content:
        return placeholder("text-widget", "No text content", "text-empty")
    s = config.style
    style = {
        "font-family": s.font_family or "Arial",
        "font-size": f"{s.font_size or 24}px",
        "color": s.color or "#000000",
        "font-weight": s.font_weight or "normal",
        "text-align": s.text_align or "left",
        "line-height": s.line_height or 1.5,
        "padding": s.padding or "10px",
    }
    if s.background_color:
        style["background-color"] = s.background_color
    if s.border_radius:
        style["border-radius"] = s.border_radius
    if s.border:
        style["border"] = s.border
    if config.html:
        inner = VisualNode("div", "text-html", attrs={"inner-html": config.content})
    else:
        inner = VisualNode("div", "text-content", text=config.content)
    return VisualNode("div", "text-widget", style=style, children=[inner])


class StatelessWidget:
    """Adapter giving pure render functions the widget update/render/close shape."""

    def __init__(self, render_fn: Callable[[Any], VisualNode]):
        self._render_fn = render_fn
        self.config = None

    def update(self, config):
        self.config = config

    def render(self) -> VisualNode:
        return self._render_fn(self.config)

    def close(self):
        pass


class TemplateRenderer:
    """Full-size renderer: visible zones, real widgets, one widget instance per zone.

    The host calls ``update`` whenever its template/zones change; widgets only
    receive a config when it differs from the one they already hold.
    """

    def __init__(
        self,
        compositor: Optional[ZoneCompositor] = None,
        executor: Optional[Executor] = None,
        scheduler: Optional[Scheduler] = None,
        on_reload: Optional[Callable[[str], None]] = None,
    ):
        self.compositor = compositor or ZoneCompositor()
        self.template: Optional[Template] = None
        self.zones = []
        self._executor = executor
        self._scheduler = scheduler
        self._on_reload = on_reload
        self._widgets: Dict[Any, Tuple[str, Any]] = {}
        self._invalid: Dict[Any, str] = {}

    def _create(self, widget_type: str):
        if widget_type == "shape":
            return StatelessWidget(render_shape)
        if widget_type == "text":
            return StatelessWidget(render_text_widget)
        if widget_type == "qrcode":
            return QRCodeRenderer(self._executor)
        if widget_type == "webview":
            return EmbeddedContentWidget(self._scheduler, self._on_reload)
        raise KeyError(widget_type)

    def widget(self, zone_id):
        entry = self._widgets.get(zone_id)
        return entry[1] if entry else None

    def _drop(self, zone_id):
        entry = self._widgets.pop(zone_id, None)
        if entry is not None:
            entry[1].close()

    def update(self, template: Any, zones: Any = None):
        self.template = parse_template(template)
        self.zones = parse_zones(zones)
        seen = set()
        for zone in self.zones:
            if not isinstance(zone, WidgetZone) or zone.widget_type not in WIDGET_CONFIGS:
                continue
            seen.add(zone.id)
            try:
                config: BaseModel = WIDGET_CONFIGS[zone.widget_type].model_validate(zone.widget_config)
            except ValidationError as e:
                logger.warning(f"Zone [{zone.id}] ({zone.widget_type}): invalid config, {e.error_count()} error(s)")
                self._invalid[zone.id] = INVALID_CONFIG
                self._drop(zone.id)
                continue
            self._invalid.pop(zone.id, None)

            entry = self._widgets.get(zone.id)
            try:
                if entry is None or entry[0] != zone.widget_type:
                    self._drop(zone.id)
                    entry = (zone.widget_type, self._create(zone.widget_type))
                    self._widgets[zone.id] = entry
                widget = entry[1]
                if widget.config != config:
                    widget.update(config)
            except Exception as e:
                logger.error(f"Zone [{zone.id}] ({zone.widget_type}): widget failed ({type(e).__name__}: {e})")
                self._invalid[zone.id] = WIDGET_FAILED
                self._drop(zone.id)

        for zone_id in list(self._widgets):
            if zone_id not in seen:
                self._drop(zone_id)
        for zone_id in list(self._invalid):
            if zone_id not in seen:
                del self._invalid[zone_id]

    def _content(self, zone: Zone) -> Optional[VisualNode]:
        if isinstance(zone, MediaZone):
            if zone.media_asset is None:
                return None
            return VisualNode(
                "img",
                "template-media",
                style={"width": "100%", "height": "100%", "object-fit": zone.media_fit},
                attrs={"src": self.compositor.resolve_media_url(zone.media_asset.url), "alt": zone.name},
            )
        if isinstance(zone, WidgetZone):
            if zone.id in self._invalid:
                return placeholder("widget-error", self._invalid[zone.id], "widget-error-message")
            widget = self.widget(zone.id)
            return widget.render() if widget is not None else None
        if isinstance(zone, TextZone):
            return render_text_widget(TextWidgetConfig(content=zone.text_content or ""))
        return None

    def render(self) -> Optional[VisualNode]:
        if self.template is None:
            return None
        style = self.compositor.canvas_style(self.template, scaled=False)
        style["overflow"] = "hidden"
        if self.template.background_image_url:
            style["background-image"] = f"url({self.compositor.resolve_media_url(self.template.background_image_url)})"
            style["background-size"] = "cover"
            style["background-position"] = "center"
        children = [
            self.compositor.zone_box(p, self._content(p.zone), "template-zone")
            for p in self.compositor.layout(self.zones)
            if p.zone.is_visible
        ]
        return VisualNode("div", "template-renderer", style=style, children=children)

    def close(self):
        for zone_id in list(self._widgets):
            self._drop(zone_id)
