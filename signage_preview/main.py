# signage_preview/main.py
import argparse
import asyncio
import json
import logging
import os
import sys
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import Optional, Sequence

from signage_preview.config.settings import settings
from signage_preview.domain.template_service import TemplateService, ZoneCompositor
from signage_preview.domain.template_validation import validate_template
from signage_preview.infrastructure.cv.image_process import encode_image

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan():
    max_workers = min(settings.QR_MAX_WORKERS, os.cpu_count() or 1)
    executor = ThreadPoolExecutor(max_workers=max_workers)
    logger.info(f"'{settings.PROJECT_NAME}' started (mode: {settings.ENVIRONMENT}), {max_workers} workers.")
    try:
        yield executor
    finally:
        logger.info("Shutting down ThreadPoolExecutor...")
        executor.shutdown(wait=True)


def load_document(path: str):
    """Reads ``{"template": {...}, "zones": [...]}`` or a template carrying its own ``zones``."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if "template" in data:
        return data["template"], data.get("zones")
    template = dict(data)
    zones = template.pop("zones", None)
    return template, zones


async def render_to_file(template_path: str, output_path: str, api_url: Optional[str] = None) -> int:
    template, zones = load_document(template_path)
    report = validate_template(template, zones)
    for issue in report.warnings:
        logger.warning(f"[{issue.type}] {issue.message}")
    for issue in report.errors:
        logger.error(f"[{issue.type}] {issue.message}")

    async with lifespan() as executor:
        service = TemplateService(ZoneCompositor(api_base_url=api_url), cpu_executor=executor)
        image = await service.render_preview_image(template, zones)

    fmt = os.path.splitext(output_path)[1].lstrip(".") or settings.SAVE_FORMAT
    with open(output_path, "wb") as f:
        f.write(encode_image(image, fmt))
    logger.info(f"Preview written to {output_path}")
    return 0 if report.is_valid else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Render a scaled preview image of a signage template.")
    parser.add_argument("template", help="template JSON file")
    parser.add_argument("output", help="output image path (.png or .jpg)")
    parser.add_argument("--api-url", default=None, help="base URL media asset paths are resolved against")
    args = parser.parse_args(argv)

    level = logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")
    return asyncio.run(render_to_file(args.template, args.output, args.api_url))


if __name__ == "__main__":
    sys.exit(main())
