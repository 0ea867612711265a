from typing import Any, Dict

from signage_preview.delivery.schemas.body import ShapeConfig
from signage_preview.domain.visual_tree import VisualNode

ROUND_SHAPES = ("circle", "ellipse")
DEFAULT_LINE_THICKNESS = 2


def _num(v: float):
    # 50.0 -> 50 so styles read "50%" rather than "50.0%"
    return int(v) if float(v).is_integer() else v


def shape_style(config: ShapeConfig) -> Dict[str, Any]:
    """Box style shared by rectangle, circle, ellipse and unknown shape types."""
    c = config
    if c.shape_type in ROUND_SHAPES:
        radius = "50%"
    else:
        radius = f"{_num(c.border_radius)}px"
    return {
        "width": f"{_num(c.width)}%",
        "height": f"{_num(c.height)}%",
        "background-color": "transparent" if c.gradient else c.background_color,
        "background": c.gradient or c.background_color,
        "border-color": c.border_color,
        "border-width": f"{_num(c.border_width)}px",
        "border-style": "solid" if c.border_width > 0 else "none",
        "border-radius": radius,
        "opacity": c.opacity,
        "transform": f"rotate({_num(c.rotation)}deg)",
        "box-shadow": c.shadow or "none",
    }


def _line(c: ShapeConfig) -> VisualNode:
    style = shape_style(c)
    style.update({
        "width": "100%",
        "height": f"{_num(c.border_width or DEFAULT_LINE_THICKNESS)}px",
        "background-color": c.border_color or c.background_color,
        "border": "none",
        "border-radius": 0,
    })
    return VisualNode("div", "shape-widget shape-line", style=style)


def _triangle(c: ShapeConfig) -> VisualNode:
    fill = "transparent" if c.gradient else c.background_color
    half = _num(c.width / 2)
    style = {
        "width": 0,
        "height": 0,
        "border-left": f"{half}% solid transparent",
        "border-right": f"{half}% solid transparent",
        "border-bottom": f"{_num(c.height)}% solid {fill}",
        "background": c.gradient or "none",
        "opacity": c.opacity,
        "transform": f"rotate({_num(c.rotation)}deg)",
        "box-shadow": c.shadow or "none",
    }
    return VisualNode("div", "shape-widget shape-triangle", style=style)


_SPECIAL = {
    "line": _line,
    "triangle": _triangle,
}


def render_shape(config: ShapeConfig = None) -> VisualNode:
    """Map a shape config to a styled box. Values are passed through unclamped."""
    config = config or ShapeConfig()
    build = _SPECIAL.get(config.shape_type)
    if build is not None:
        return build(config)
    return VisualNode("div", f"shape-widget shape-{config.shape_type}", style=shape_style(config))
