import asyncio
from unittest.mock import MagicMock

import pytest

from signage_preview.domain import widgets
from signage_preview.domain.embedded_content import EmbeddedContentWidget
from signage_preview.domain.qr_renderer import QRCodeRenderer
from signage_preview.domain.template_service import ZoneCompositor
from signage_preview.domain.widgets import INVALID_CONFIG, WIDGET_FAILED, TemplateRenderer, render_text_widget
from signage_preview.delivery.schemas.body import TextWidgetConfig

TEMPLATE = {"name": "Menu", "width": 1920, "height": 1080, "background_color": "#222222"}
QR_THEN_WEB = [
    {"id": "qr", "contentType": "widget", "widgetType": "qrcode", "widgetConfig": {"text": "hello", "size": 64}},
    {"id": "web", "contentType": "widget", "widgetType": "webview", "widgetConfig": {"url": "https://example.com"}},
]


def _zone_node(tree, zone_id):
    return next(n for n in tree.children if n.attrs["data-zone-id"] == zone_id)


def test_no_template_renders_nothing():
    renderer = TemplateRenderer()
    renderer.update(None, [])
    assert renderer.render() is None


def test_canvas_is_unscaled():
    renderer = TemplateRenderer(ZoneCompositor(api_base_url="http://cdn"))
    renderer.update({**TEMPLATE, "background_image_url": "/bg.jpg"}, [])
    tree = renderer.render()
    assert tree.style["width"] == 1920
    assert "transform" not in tree.style
    assert tree.style["background-color"] == "#222222"
    assert tree.style["background-image"] == "url(http://cdn/bg.jpg)"


def test_shape_widget_is_rendered():
    renderer = TemplateRenderer()
    renderer.update(TEMPLATE, [{"id": "s", "contentType": "widget", "widgetType": "shape",
                                "widgetConfig": {"shapeType": "circle", "borderRadius": 4}}])
    shape = _zone_node(renderer.render(), "s").find("shape-widget")
    assert shape.style["border-radius"] == "50%"


def test_invalid_widget_config_is_isolated():
    renderer = TemplateRenderer()
    renderer.update(TEMPLATE, [
        {"id": "bad", "contentType": "widget", "widgetType": "shape", "widgetConfig": {"width": "wide"}},
        {"id": "ok", "contentType": "text", "textContent": "Hello"},
    ])
    tree = renderer.render()
    assert _zone_node(tree, "bad").text_content() == INVALID_CONFIG
    assert _zone_node(tree, "ok").text_content() == "Hello"

    renderer.update(TEMPLATE, [
        {"id": "bad", "contentType": "widget", "widgetType": "shape", "widgetConfig": {"width": 10}},
    ])
    assert _zone_node(renderer.render(), "bad").find("shape-widget") is not None


def test_unknown_widget_type_and_hidden_zones():
    renderer = TemplateRenderer()
    renderer.update(TEMPLATE, [
        {"id": "w", "contentType": "widget", "widgetType": "weather"},
        {"id": "h", "contentType": "text", "isVisible": False},
    ])
    tree = renderer.render()
    assert [n.attrs["data-zone-id"] for n in tree.children] == ["w"]
    assert tree.children[0].children == []


def test_media_zone_uses_its_fit():
    renderer = TemplateRenderer(ZoneCompositor(api_base_url="http://cdn"))
    renderer.update(TEMPLATE, [{"id": "m", "contentType": "media", "mediaFit": "contain",
                                "mediaAsset": {"url": "/a.png"}}])
    img = _zone_node(renderer.render(), "m").children[0]
    assert img.attrs["src"] == "http://cdn/a.png"
    assert img.style["object-fit"] == "contain"


def test_webview_widget_keeps_timer_across_identical_updates(scheduler):
    renderer = TemplateRenderer(scheduler=scheduler)
    zones = [{"id": "web", "contentType": "widget", "widgetType": "webview",
              "widgetConfig": {"url": "https://example.com", "updateInterval": 1000}}]
    renderer.update(TEMPLATE, zones)
    widget = renderer.widget("web")
    assert isinstance(widget, EmbeddedContentWidget)

    scheduler.advance(0.5)
    renderer.update(TEMPLATE, zones)
    scheduler.advance(0.5)
    assert renderer.widget("web") is widget
    assert widget.reload_count == 1

    frame = _zone_node(renderer.render(), "web").find("webview-iframe")
    assert frame.attrs["src"] == "https://example.com"


def test_removed_zone_tears_down_widget(scheduler):
    renderer = TemplateRenderer(scheduler=scheduler)
    renderer.update(TEMPLATE, [{"id": "web", "contentType": "widget", "widgetType": "webview",
                                "widgetConfig": {"url": "https://example.com", "updateInterval": 1000}}])
    widget = renderer.widget("web")
    renderer.update(TEMPLATE, [])
    scheduler.advance(5.0)
    assert widget.reload_count == 0
    assert renderer.widget("web") is None


def test_close_stops_all_widgets(scheduler):
    renderer = TemplateRenderer(scheduler=scheduler)
    renderer.update(TEMPLATE, [{"id": "web", "contentType": "widget", "widgetType": "webview",
                                "widgetConfig": {"url": "https://example.com", "updateInterval": 1000}}])
    renderer.close()
    assert scheduler.pending == 0


@pytest.mark.asyncio
async def test_qrcode_widget_draws():
    renderer = TemplateRenderer()
    renderer.update(TEMPLATE, [{"id": "qr", "contentType": "widget", "widgetType": "qrcode",
                                "widgetConfig": {"text": "hello", "size": 64}}])
    widget = renderer.widget("qr")
    assert isinstance(widget, QRCodeRenderer)
    await widget.pending

    canvas = _zone_node(renderer.render(), "qr").find("qrcode-canvas")
    assert canvas.attrs["image"].size == (64, 64)
    renderer.close()


@pytest.mark.asyncio
async def test_widget_type_change_replaces_instance():
    renderer = TemplateRenderer()
    renderer.update(TEMPLATE, [{"id": "x", "contentType": "widget", "widgetType": "text",
                                "widgetConfig": {"content": "hi"}}])
    renderer.update(TEMPLATE, [{"id": "x", "contentType": "widget", "widgetType": "qrcode",
                                "widgetConfig": {"text": ""}}])
    assert isinstance(renderer.widget("x"), QRCodeRenderer)
    assert _zone_node(renderer.render(), "x").text_content() == "No text provided"


def test_text_widget_rendering():
    empty = render_text_widget(TextWidgetConfig())
    assert empty.text_content() == "No text content"

    node = render_text_widget(TextWidgetConfig(content="Hi", style={"fontSize": 40, "backgroundColor": "#eee"}))
    assert node.style["font-size"] == "40px"
    assert node.style["background-color"] == "#eee"
    assert node.find("text-content").text == "Hi"

    html = render_text_widget(TextWidgetConfig(content="<b>Hi</b>", html=True))
    assert html.find("text-html").attrs["inner-html"] == "<b>Hi</b>"


def test_qrcode_zone_without_event_loop_keeps_later_zones(scheduler):
    renderer = TemplateRenderer(scheduler=scheduler)
    renderer.update(TEMPLATE, QR_THEN_WEB)

    qr = renderer.widget("qr")
    assert qr.deferred
    assert qr.pending is None
    assert isinstance(renderer.widget("web"), EmbeddedContentWidget)

    tree = renderer.render()
    assert _zone_node(tree, "qr").find("qrcode-canvas").attrs["image"] is None
    assert _zone_node(tree, "web").find("webview-iframe").attrs["src"] == "https://example.com"

    async def _render_in_loop():
        renderer.render()
        return await qr.pending

    outcome = asyncio.run(_render_in_loop())
    assert outcome.sequence == qr.sequence
    assert not qr.deferred
    assert qr.surface.image.size == (64, 64)


def test_failing_widget_does_not_stop_later_zones(monkeypatch, scheduler):
    def _fail(self, config):
        raise RuntimeError("draw failed")

    log = MagicMock()
    monkeypatch.setattr(QRCodeRenderer, "update", _fail)
    monkeypatch.setattr(widgets, "logger", log)
    renderer = TemplateRenderer(scheduler=scheduler)
    renderer.update(TEMPLATE, QR_THEN_WEB)

    assert renderer.widget("qr") is None
    assert isinstance(renderer.widget("web"), EmbeddedContentWidget)
    assert _zone_node(renderer.render(), "qr").text_content() == WIDGET_FAILED
    log.error.assert_called_once()
    assert "RuntimeError" in log.error.call_args[0][0]


def test_invalid_widget_config_is_logged_as_warning(monkeypatch):
    log = MagicMock()
    monkeypatch.setattr(widgets, "logger", log)
    renderer = TemplateRenderer()
    renderer.update(TEMPLATE, [
        {"id": "bad", "contentType": "widget", "widgetType": "qrcode", "widgetConfig": {"size": -5}},
    ])

    log.warning.assert_called_once()
    assert "Zone [bad] (qrcode)" in log.warning.call_args[0][0]
    log.error.assert_not_called()
