import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    field_validator,
)

_FROZEN = ConfigDict(populate_by_name=True, frozen=True)


class Template(BaseModel):
    model_config = _FROZEN

    name: str = ""
    width: float
    height: float
    background_color: Optional[str] = None
    background_image_url: Optional[str] = None  # relative path, resolved like media


class MediaAsset(BaseModel):
    model_config = _FROZEN

    url: str  # relative to the API base


class _ZoneBase(BaseModel):
    model_config = _FROZEN

    id: Union[str, int]
    name: str = ""
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    z_index: int = Field(0, alias="zIndex")
    is_visible: bool = Field(True, alias="isVisible")

    @field_validator("z_index", mode="before")
    @classmethod
    def _z_index_default(cls, v):
        return 0 if v is None else v


class MediaZone(_ZoneBase):
    content_type: Literal["media"] = Field("media", alias="contentType")
    media_asset: Optional[MediaAsset] = Field(None, alias="mediaAsset")
    media_fit: Literal["cover", "contain", "fill"] = Field("cover", alias="mediaFit")


class WidgetZone(_ZoneBase):
    content_type: Literal["widget"] = Field("widget", alias="contentType")
    widget_type: Optional[str] = Field(None, alias="widgetType")
    widget_config: Dict[str, Any] = Field(default_factory=dict, alias="widgetConfig")

    @field_validator("widget_config", mode="before")
    @classmethod
    def _config_default(cls, v):
        return {} if v is None else v


class TextZone(_ZoneBase):
    content_type: Literal["text"] = Field("text", alias="contentType")
    text_content: Optional[str] = Field(None, alias="textContent")


class UnknownZone(_ZoneBase):
    """Zone whose content type has no renderer; it keeps its box and nothing else."""

    content_type: str = Field("", alias="contentType")


_ZONE_KINDS = ("media", "widget", "text")


def _zone_kind(value: Any) -> str:
    if isinstance(value, dict):
        kind = value.get("contentType", value.get("content_type"))
    else:
        kind = getattr(value, "content_type", None)
    return kind if kind in _ZONE_KINDS else "unknown"


Zone = Annotated[
    Union[
        Annotated[MediaZone, Tag("media")],
        Annotated[WidgetZone, Tag("widget")],
        Annotated[TextZone, Tag("text")],
        Annotated[UnknownZone, Tag("unknown")],
    ],
    Discriminator(_zone_kind),
]

_zone_list = TypeAdapter(List[Zone])


def parse_zones(raw: Any) -> List[Zone]:
    """Accepts None, a list of dicts/zone models, or the JSON string the template service stores."""
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)):
        raw = json.loads(raw)
    return _zone_list.validate_python(raw)


def parse_template(raw: Any) -> Optional[Template]:
    if raw is None or isinstance(raw, Template):
        return raw
    return Template.model_validate(raw)


# --- Widget configurations ---

class ShapeConfig(BaseModel):
    model_config = _FROZEN

    shape_type: str = Field("rectangle", alias="shapeType")
    width: float = 100   # percent of the zone
    height: float = 100
    background_color: str = Field("#1976d2", alias="backgroundColor")
    border_color: str = Field("#000000", alias="borderColor")
    border_width: float = Field(0, alias="borderWidth")
    border_radius: float = Field(0, alias="borderRadius")
    rotation: float = 0
    opacity: float = 1
    gradient: Optional[str] = None  # e.g. "linear-gradient(45deg, #ff0000, #0000ff)"
    shadow: Optional[str] = None    # e.g. "0px 2px 4px rgba(0,0,0,0.2)"


class QRColor(BaseModel):
    model_config = _FROZEN

    dark: str = "#000000"
    light: str = "#ffffff"


class QRConfig(BaseModel):
    model_config = _FROZEN

    text: str = ""
    size: int = Field(200, gt=0)
    error_correction: Literal["L", "M", "Q", "H"] = Field("M", alias="errorCorrection")
    margin: int = Field(1, ge=0)
    color: QRColor = Field(default_factory=QRColor)


class EmbeddedContentConfig(BaseModel):
    model_config = _FROZEN

    url: str = ""
    allow_scrolling: bool = Field(True, alias="allowScrolling")
    sandbox: str = "allow-same-origin allow-scripts allow-forms"
    update_interval: Optional[int] = Field(None, ge=0, alias="updateInterval")  # ms


class TextStyle(BaseModel):
    model_config = _FROZEN

    font_family: str = Field("Arial", alias="fontFamily")
    font_size: Union[int, float] = Field(24, alias="fontSize")
    color: str = "#000000"
    font_weight: str = Field("normal", alias="fontWeight")
    text_align: str = Field("left", alias="textAlign")
    line_height: Union[int, float] = Field(1.5, alias="lineHeight")
    padding: str = "10px"
    background_color: Optional[str] = Field(None, alias="backgroundColor")
    border_radius: Optional[str] = Field(None, alias="borderRadius")
    border: Optional[str] = None


class TextWidgetConfig(BaseModel):
    model_config = _FROZEN

    content: str = ""
    html: bool = False
    style: TextStyle = Field(default_factory=TextStyle)


WIDGET_CONFIGS = {
    "shape": ShapeConfig,
    "qrcode": QRConfig,
    "webview": EmbeddedContentConfig,
    "text": TextWidgetConfig,
}
