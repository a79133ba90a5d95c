"""OCR boundary: crop layouts for Wrapped cards and the recognizer protocol."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from wrapped.profile import NormalizedText
from wrapped.text_normalizer import Layout, RawExtraction, normalize_extraction

_LOG = logging.getLogger(__name__)

# Share-card rankings sit in the upper three quarters of the image.
RANKED_AREA_HEIGHT_RATIO = 0.75


@dataclass(frozen=True)
class Region:
    top: int
    left: int
    width: int
    height: int


class TextRecognizer(Protocol):
    def recognize(self, image: Any, region: Optional[Region] = None) -> str:
        """Return UTF-8 text recognized in ``region`` (whole image when ``None``)."""


def regions_for_layout(width: int, height: int, layout: Layout) -> list[Optional[Region]]:
    """Return the OCR regions to read for a card of the given size."""
    if width <= 0 or height <= 0:
        raise ValueError("image dimensions must be positive")
    if layout is Layout.SINGLE:
        return [None]
    half_width = width // 2
    ranked_height = int(height * RANKED_AREA_HEIGHT_RATIO)
    return [
        Region(top=0, left=0, width=half_width, height=ranked_height),
        Region(top=0, left=half_width, width=half_width, height=ranked_height),
    ]


def extract_profile(
    recognizer: TextRecognizer,
    image: Any,
    *,
    width: int,
    height: int,
    layout: Layout = Layout.DUAL,
) -> NormalizedText:
    texts = [recognizer.recognize(image, region) for region in regions_for_layout(width, height, layout)]
    _LOG.debug("OCR returned %d region(s) for %s layout", len(texts), layout.value)
    if layout is Layout.DUAL:
        extraction = RawExtraction(text=texts[0], layout=layout, right_text=texts[1])
    else:
        extraction = RawExtraction(text=texts[0], layout=layout)
    return normalize_extraction(extraction)
