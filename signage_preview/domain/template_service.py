# domain/template_service.py
import asyncio
import logging
import time
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from PIL import Image

from signage_preview.config.settings import settings
from signage_preview.delivery.schemas.body import (
    MediaZone,
    Template,
    TextZone,
    WidgetZone,
    Zone,
    parse_template,
    parse_zones,
)
from signage_preview.domain.visual_tree import VisualNode, dispatch_click
from signage_preview.infrastructure.cv import image_process
from signage_preview.infrastructure.media.loader import load_many_bytes_async

# --- CONFIGURATION ---
DEFAULT_API_URL = "http://localhost:3000"
TEXT_FALLBACK = "Text"
LABEL_FONT_SIZE = 24

# --- LOGGER ---
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(message)s', '%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False


@dataclass(frozen=True)
class ZoneLayout:
    """A zone placed on the canvas, in the template's native units."""

    zone: Zone
    left: float
    top: float
    width: float
    height: float
    z_index: int

    def scaled(self, scale: float) -> Tuple[float, float, float, float]:
        return (self.left * scale, self.top * scale, self.width * scale, self.height * scale)

    def style(self) -> Dict[str, Any]:
        return {
            "position": "absolute",
            "left": self.left,
            "top": self.top,
            "width": self.width,
            "height": self.height,
            "z-index": self.z_index,
        }


class ZoneCompositor:
    def __init__(
        self,
        api_base_url: Optional[str] = None,
        scale: Optional[float] = None,
        default_background: Optional[str] = None,
    ):
        base = settings.API_URL if api_base_url is None else api_base_url
        self.api_base_url = base or DEFAULT_API_URL
        self.scale = settings.PREVIEW_SCALE if scale is None else scale
        self.default_background = default_background or settings.DEFAULT_BACKGROUND_COLOR

    def resolve_media_url(self, path: str) -> str:
        return f"{self.api_base_url}{path}"

    def layout(self, zones: Optional[Sequence[Zone]]) -> List[ZoneLayout]:
        """Zones in paint order: ascending z-index, ties keep their input order."""
        placed = [
            ZoneLayout(zone, zone.x, zone.y, zone.width, zone.height, zone.z_index)
            for zone in (zones or [])
        ]
        return sorted(placed, key=lambda p: p.z_index)

    def canvas_style(self, template: Template, scaled: bool = True) -> Dict[str, Any]:
        style = {
            "position": "relative",
            "width": template.width,
            "height": template.height,
            "background-color": template.background_color or self.default_background,
        }
        if scaled:
            style["transform"] = f"scale({self.scale})"
            style["transform-origin"] = "top left"
        return style

    def preview_content(self, zone: Zone) -> Optional[VisualNode]:
        if isinstance(zone, MediaZone) and zone.media_asset is not None:
            return VisualNode(
                "img",
                "preview-media",
                style={"width": "100%", "height": "100%", "object-fit": "cover"},
                attrs={"src": self.resolve_media_url(zone.media_asset.url), "alt": zone.name},
            )
        if isinstance(zone, WidgetZone):
            return VisualNode("div", "preview-widget", text=zone.name)
        if isinstance(zone, TextZone):
            return VisualNode("div", "preview-text", text=zone.text_content or TEXT_FALLBACK)
        return None

    def zone_box(self, placed: ZoneLayout, content: Optional[VisualNode], class_name: str = "preview-zone") -> VisualNode:
        return VisualNode(
            "div",
            class_name,
            style=placed.style(),
            attrs={"data-zone-id": placed.zone.id},
            children=[content] if content is not None else [],
        )

    def compose(self, template: Template, zones: Optional[Sequence[Zone]]) -> VisualNode:
        children = [self.zone_box(p, self.preview_content(p.zone)) for p in self.layout(zones)]
        return VisualNode("div", "template-preview-canvas", style=self.canvas_style(template), children=children)


@dataclass
class PreviewSurface:
    root: VisualNode
    canvas: VisualNode
    close_button: VisualNode
    layouts: List[ZoneLayout]
    scale: float

    def click(self, target: Optional[VisualNode] = None) -> int:
        return dispatch_click(self.root, target or self.root)

    def zone_node(self, zone_id) -> Optional[VisualNode]:
        for node in self.canvas.children:
            if node.attrs.get("data-zone-id") == zone_id:
                return node
        return None

    def scaled_rect(self, zone_id) -> Optional[Tuple[float, float, float, float]]:
        for placed in self.layouts:
            if placed.zone.id == zone_id:
                return placed.scaled(self.scale)
        return None


def render_preview(
    template: Any,
    zones: Any = None,
    on_close: Optional[Callable[[], None]] = None,
    compositor: Optional[ZoneCompositor] = None,
) -> Optional[PreviewSurface]:
    """Read-only preview of a template. Returns None when there is no template."""
    template = parse_template(template)
    if template is None:
        return None
    zones = parse_zones(zones)
    compositor = compositor or ZoneCompositor()

    canvas = compositor.compose(template, zones)
    close_button = VisualNode("button", "close-btn", attrs={"aria-label": "Close"}, on_click=on_close)
    header = VisualNode(
        "div",
        "template-preview-header",
        children=[VisualNode("h2", text=template.name), close_button],
    )
    modal = VisualNode("div", "template-preview-modal", children=[header, canvas], stop_propagation=True)
    overlay = VisualNode("div", "template-preview-overlay", children=[modal], on_click=on_close)
    return PreviewSurface(overlay, canvas, close_button, compositor.layout(zones), compositor.scale)


class TemplateService:
    """Rasterizes the preview canvas with Pillow, mirroring ``ZoneCompositor.compose``."""

    def __init__(
        self,
        compositor: Optional[ZoneCompositor] = None,
        cpu_executor: Optional[Executor] = None,
        font_path: Optional[str] = None,
    ):
        self.compositor = compositor or ZoneCompositor()
        self.cpu_executor = cpu_executor
        # labels are drawn on the scaled raster
        self.label_font_size = max(1, int(round(LABEL_FONT_SIZE * self.compositor.scale)))
        self.font = image_process.load_font(self.label_font_size, font_path or settings.PREVIEW_FONT_PATH)

    def _scaled_box(self, placed: ZoneLayout) -> Tuple[int, int, int, int]:
        left, top, w, h = placed.scaled(self.compositor.scale)
        return (int(round(left)), int(round(top)), max(1, int(round(w))), max(1, int(round(h))))

    def _composite_preview(
        self,
        template: Template,
        layouts: List[ZoneLayout],
        media: Dict[Any, Optional[bytes]],
    ) -> Image.Image:
        scale = self.compositor.scale
        canvas = image_process.new_canvas(
            int(round(template.width * scale)),
            int(round(template.height * scale)),
            template.background_color or self.compositor.default_background,
        )
        for placed in layouts:
            zone = placed.zone
            box = self._scaled_box(placed)
            try:
                if isinstance(zone, MediaZone) and zone.media_asset is not None:
                    photo = image_process.decode_image(media.get(zone.id))
                    if photo is None:
                        logger.warning(f"Zone [{zone.id}]: media not available, zone left blank.")
                        continue
                    try:
                        image_process.paste_zone_image(canvas, photo, box)
                    finally:
                        photo.close()
                elif isinstance(zone, WidgetZone):
                    image_process.draw_label(canvas, box, zone.name, self.font)
                elif isinstance(zone, TextZone):
                    image_process.draw_label(canvas, box, zone.text_content or TEXT_FALLBACK, self.font)
            except Exception as e:
                logger.warning(f"Zone [{zone.id}]: rendering failed ({type(e).__name__}: {e}), zone left blank.")
        return canvas

    async def render_preview_image(self, template: Any, zones: Any = None) -> Optional[Image.Image]:
        template = parse_template(template)
        if template is None:
            return None
        zones = parse_zones(zones)
        start_time = time.perf_counter()
        layouts = self.compositor.layout(zones)

        media_zones = [
            p.zone for p in layouts
            if isinstance(p.zone, MediaZone) and p.zone.media_asset is not None
        ]
        logger.info(f"Stage 1/2: loading {len(media_zones)} media assets for '{template.name}'.")
        sources = [self.compositor.resolve_media_url(z.media_asset.url) for z in media_zones]
        loaded = await load_many_bytes_async(sources, timeout=settings.REQUEST_TIMEOUT)
        media = {z.id: b for z, b in zip(media_zones, loaded)}

        logger.info(f"Stage 2/2: compositing {len(layouts)} zones at scale {self.compositor.scale}.")
        loop = asyncio.get_running_loop()
        image = await loop.run_in_executor(self.cpu_executor, self._composite_preview, template, layouts, media)
        logger.info(f"Preview for '{template.name}' finished in {time.perf_counter() - start_time:.2f}s.")
        return image
