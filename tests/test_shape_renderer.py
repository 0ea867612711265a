import pytest

from signage_preview.delivery.schemas.body import ShapeConfig
from signage_preview.domain.shape_renderer import render_shape, shape_style


@pytest.mark.parametrize("shape_type", ["circle", "ellipse"])
@pytest.mark.parametrize("radius", [0, 12, 999])
def test_round_shapes_always_half_radius(shape_type, radius):
    node = render_shape(ShapeConfig(shapeType=shape_type, borderRadius=radius))
    assert node.style["border-radius"] == "50%"
    assert f"shape-{shape_type}" in node.class_name


@pytest.mark.parametrize("border_width, expected", [(0, "2px"), (5, "5px"), (1.5, "1.5px")])
def test_line_thickness_follows_border_width(border_width, expected):
    node = render_shape(ShapeConfig(shapeType="line", borderWidth=border_width, width=30))
    assert node.style["height"] == expected
    assert node.style["width"] == "100%"
    assert node.style["border"] == "none"
    assert node.style["border-radius"] == 0


def test_line_fill_prefers_border_color():
    node = render_shape(ShapeConfig(shapeType="line", borderColor="#ff0000", backgroundColor="#00ff00"))
    assert node.style["background-color"] == "#ff0000"

    node = render_shape(ShapeConfig(shapeType="line", borderColor="", backgroundColor="#00ff00"))
    assert node.style["background-color"] == "#00ff00"


def test_triangle_geometry():
    node = render_shape(ShapeConfig(shapeType="triangle", width=60, height=40, backgroundColor="#123456"))
    assert node.style["width"] == 0
    assert node.style["height"] == 0
    assert node.style["border-left"] == "30% solid transparent"
    assert node.style["border-right"] == "30% solid transparent"
    assert node.style["border-bottom"] == "40% solid #123456"
    assert node.style["background"] == "none"


def test_triangle_gradient_renders_as_background():
    gradient = "linear-gradient(45deg, #ff0000, #0000ff)"
    node = render_shape(ShapeConfig(shapeType="triangle", gradient=gradient))
    assert node.style["border-bottom"].endswith("solid transparent")
    assert node.style["background"] == gradient


def test_rectangle_box_style():
    config = ShapeConfig(
        width=50, height=25, borderWidth=3, borderColor="#111111", borderRadius=8,
        rotation=45, opacity=0.5, shadow="0px 2px 4px rgba(0,0,0,0.2)",
    )
    style = render_shape(config).style
    assert style["width"] == "50%"
    assert style["height"] == "25%"
    assert style["border-style"] == "solid"
    assert style["border-width"] == "3px"
    assert style["border-radius"] == "8px"
    assert style["transform"] == "rotate(45deg)"
    assert style["opacity"] == 0.5
    assert style["box-shadow"] == "0px 2px 4px rgba(0,0,0,0.2)"


def test_gradient_wins_over_background_color():
    style = shape_style(ShapeConfig(gradient="linear-gradient(red, blue)", backgroundColor="#00ff00"))
    assert style["background"] == "linear-gradient(red, blue)"
    assert style["background-color"] == "transparent"


def test_no_border_when_width_zero():
    style = shape_style(ShapeConfig())
    assert style["border-style"] == "none"
    assert style["box-shadow"] == "none"


def test_negative_values_pass_through():
    style = render_shape(ShapeConfig(width=-10, height=-5)).style
    assert style["width"] == "-10%"
    assert style["height"] == "-5%"


def test_unknown_shape_type_renders_box():
    node = render_shape(ShapeConfig(shapeType="hexagon"))
    assert node.class_name == "shape-widget shape-hexagon"
    assert node.style["width"] == "100%"


def test_defaults_without_config():
    node = render_shape()
    assert node.class_name == "shape-widget shape-rectangle"
    assert node.style["background"] == "#1976d2"


def test_rendering_is_idempotent():
    config = ShapeConfig(shapeType="triangle", width=33, height=70, rotation=10)
    assert render_shape(config) == render_shape(config)
