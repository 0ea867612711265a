# infrastructure/media/loader.py
import asyncio
import base64
import logging
import os
from typing import List, Optional

import aiofiles
import aiohttp

logger = logging.getLogger(__name__)


async def load_image_bytes_async(src: str, session: aiohttp.ClientSession, timeout: float = 30) -> Optional[bytes]:
    """Fetch media from an http(s) URL, a local file or a data URL. Returns None on failure."""
    try:
        if src.startswith(("http://", "https://")):
            async with session.get(src, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
                response.raise_for_status()
                return await response.read()
        if os.path.isfile(src):
            async with aiofiles.open(src, "rb") as f:
                return await f.read()
        if src.startswith("data:image"):
            _, encoded = src.split(",", 1)
            return base64.b64decode(encoded + "===")
        logger.warning(f"Unsupported media source '{src[:70]}'")
        return None
    except Exception as e:
        logger.warning(f"Failed to load media from '{src[:70]}...': {type(e).__name__}")
        return None


async def load_many_bytes_async(sources: List[str], timeout: float = 30) -> List[Optional[bytes]]:
    if not sources:
        return []
    async with aiohttp.ClientSession() as session:
        tasks = [load_image_bytes_async(src, session, timeout) for src in sources]
        return await asyncio.gather(*tasks)
