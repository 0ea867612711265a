# domain/qr_renderer.py
import asyncio
import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np
import qrcode
from PIL import Image, ImageColor
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q
from qrcode.exceptions import DataOverflowError

from signage_preview.delivery.schemas.body import QRConfig
from signage_preview.domain.visual_tree import VisualNode, placeholder

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] [QR] %(message)s', '%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False

ERROR_CORRECTION = {
    "L": ERROR_CORRECT_L,  # ~7%
    "M": ERROR_CORRECT_M,  # ~15%
    "Q": ERROR_CORRECT_Q,  # ~25%
    "H": ERROR_CORRECT_H,  # ~30%
}


class QREncodingError(Exception):
    pass


@dataclass(frozen=True)
class QRResult:
    sequence: int
    config: QRConfig
    matrix: np.ndarray   # True = dark module, quiet zone included
    image: Image.Image


@dataclass(frozen=True)
class QRFailure:
    sequence: int
    config: QRConfig
    error: Exception


QROutcome = Union[QRResult, QRFailure]


def encode_qr(config: QRConfig) -> Tuple[np.ndarray, Image.Image]:
    """Encode ``config.text`` and draw it as a ``size`` x ``size`` RGBA image."""
    try:
        qr = qrcode.QRCode(
            version=None,  # let the library pick
            error_correction=ERROR_CORRECTION[config.error_correction],
            box_size=1,
            border=config.margin,
        )
        qr.add_data(config.text)
        qr.make(fit=True)
        dark = ImageColor.getcolor(config.color.dark, "RGBA")
        light = ImageColor.getcolor(config.color.light, "RGBA")
    except DataOverflowError as e:
        raise QREncodingError(f"text too long for error correction level {config.error_correction}") from e
    except ValueError as e:
        raise QREncodingError(str(e)) from e

    matrix = np.array(qr.get_matrix(), dtype=bool)
    n = matrix.shape[0]
    img = Image.new("RGBA", (n, n), light)
    mask = Image.fromarray(matrix.astype(np.uint8) * 255)
    img.paste(dark, (0, 0, n, n), mask)
    return matrix, img.resize((config.size, config.size), Image.Resampling.NEAREST)


class QRCodeRenderer:
    """Owns one QR surface. Each ``update`` starts a new numbered draw; only the
    most recently started draw may write the surface.

    Outside an event loop the draw is held back and started by the next
    ``update``/``render``/``resume`` call made while a loop is running.
    """

    def __init__(self, executor: Optional[Executor] = None):
        self._executor = executor
        self._sequence = 0
        self._task: Optional[asyncio.Task] = None
        self._deferred = False
        self.config = QRConfig()
        self.surface: Optional[QRResult] = None

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def pending(self) -> Optional["asyncio.Task[QROutcome]"]:
        return self._task

    @property
    def deferred(self) -> bool:
        return self._deferred

    def update(self, config: QRConfig) -> Optional["asyncio.Task[QROutcome]"]:
        self.config = config
        self._sequence += 1
        self._cancel()
        if not config.text:
            self.surface = None
            return None
        return self._start()

    def resume(self) -> Optional["asyncio.Task[QROutcome]"]:
        if self._deferred:
            return self._start()
        return self._task

    def _start(self) -> Optional["asyncio.Task[QROutcome]"]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, QR draw seq={self._sequence} deferred")
            self._deferred = True
            return None
        self._deferred = False
        self._task = loop.create_task(self._draw(self._sequence, self.config))
        return self._task

    def _cancel(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._deferred = False

    async def _draw(self, sequence: int, config: QRConfig) -> QROutcome:
        loop = asyncio.get_running_loop()
        try:
            matrix, image = await loop.run_in_executor(self._executor, encode_qr, config)
        except Exception as e:
            logger.error(f"QR code generation error (seq={sequence}): {type(e).__name__}: {e}")
            return QRFailure(sequence, config, e)

        result = QRResult(sequence, config, matrix, image)
        if sequence == self._sequence:
            self.surface = result
        else:
            logger.debug(f"Discarding stale QR draw seq={sequence} (latest={self._sequence})")
        return result

    def render(self) -> VisualNode:
        if not self.config.text:
            return placeholder("qrcode-widget", "No text provided", "qrcode-error")
        self.resume()
        canvas = VisualNode(
            "canvas",
            "qrcode-canvas",
            attrs={
                "width": self.config.size,
                "height": self.config.size,
                "image": self.surface.image if self.surface else None,
            },
        )
        return VisualNode("div", "qrcode-widget", children=[canvas])

    def close(self):
        self._cancel()
