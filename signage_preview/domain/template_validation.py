"""Pre-flight checks for a template and its zones.

Errors are problems a playback device would hit; warnings are layouts that
render but probably are not what the author meant.
"""

from dataclasses import dataclass, field
from itertools import combinations
from typing import Any, List

from signage_preview.delivery.schemas.body import WidgetZone, parse_template, parse_zones
from signage_preview.domain.embedded_content import parse_absolute_url

MIN_ZONE_SIZE = 50


@dataclass(frozen=True)
class Issue:
    type: str
    message: str


@dataclass
class ValidationReport:
    errors: List[Issue] = field(default_factory=list)
    warnings: List[Issue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def zones_overlap(a, b) -> bool:
    return not (
        a.x + a.width <= b.x
        or b.x + b.width <= a.x
        or a.y + a.height <= b.y
        or b.y + b.height <= a.y
    )


def _label(zone, index: int) -> str:
    return zone.name or f"Zone {index + 1}"


def _widget_errors(zone: WidgetZone) -> List[str]:
    if zone.widget_type == "webview":
        url = zone.widget_config.get("url") or ""
        if isinstance(url, str) and url.strip() and parse_absolute_url(url) is None:
            return ["Invalid URL format"]
    return []


def validate_template(template: Any, zones: Any = None) -> ValidationReport:
    template = parse_template(template)
    if template is None:
        raise ValueError("template is required")
    zones = parse_zones(zones)
    report = ValidationReport()

    if not template.name or not template.name.strip():
        report.errors.append(Issue("template_name", "Template name is required"))
    if template.width <= 0:
        report.errors.append(Issue("template_width", "Template width must be greater than 0"))
    if template.height <= 0:
        report.errors.append(Issue("template_height", "Template height must be greater than 0"))

    if not zones:
        report.warnings.append(Issue("no_zones", "Template has no zones. Consider adding content."))
        return report

    for i, zone in enumerate(zones):
        label = _label(zone, i)
        if zone.x < 0 or zone.y < 0:
            report.errors.append(Issue("zone_bounds", f'Zone "{label}" is outside canvas bounds (negative position)'))
        if zone.x + zone.width > template.width:
            report.errors.append(Issue("zone_bounds", f'Zone "{label}" extends beyond canvas width'))
        if zone.y + zone.height > template.height:
            report.errors.append(Issue("zone_bounds", f'Zone "{label}" extends beyond canvas height'))
        if zone.width <= 0:
            report.errors.append(Issue("zone_dimensions", f'Zone "{label}" has invalid width'))
        if zone.height <= 0:
            report.errors.append(Issue("zone_dimensions", f'Zone "{label}" has invalid height'))

        if isinstance(zone, WidgetZone):
            for message in _widget_errors(zone):
                report.errors.append(Issue("widget_config", f'Zone "{label}" ({zone.widget_type}): {message}'))

        if zone.width < MIN_ZONE_SIZE or zone.height < MIN_ZONE_SIZE:
            report.warnings.append(Issue(
                "small_zone",
                f'Zone "{label}" is very small ({zone.width:g}x{zone.height:g}px). Content may not be visible.',
            ))

    for (i, a), (j, b) in combinations(enumerate(zones), 2):
        if zones_overlap(a, b) and a.z_index == b.z_index:
            report.warnings.append(Issue(
                "overlapping_zones",
                f'Zones "{_label(a, i)}" and "{_label(b, j)}" overlap at the same depth (z-index: {a.z_index})',
            ))

    return report
