"""Decode embedded image bytes into grayscale pixel arrays."""

from __future__ import annotations

import io
import logging

import numpy as np
from PIL import Image

from readgrid.content.adapters.xhtml_adapter import ImageAsset


logger = logging.getLogger(__name__)

# Cells are coarse; nothing finer than this survives the glyph downsample.
MAX_DECODED_SIDE = 512


def decode_image(data: bytes, name: str) -> ImageAsset | None:
    """Return the image's declared size and ``"L"`` pixels, or None if undecodable."""

    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
            image.thumbnail((MAX_DECODED_SIDE, MAX_DECODED_SIDE))
            pixels = np.asarray(image.convert("L"))
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        logger.warning("Cannot decode image %s: %s", name, exc)
        return None
    return ImageAsset(width_px=width, height_px=height, pixels=pixels)
