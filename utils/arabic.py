"""
Arabic text shaping for text drawn directly on the PDF canvas.

ReportLab draws glyphs left to right without contextual shaping, so Arabic
strings are reshaped into presentation forms and reordered for display
before drawing. HTML blocks do not need this: the browser shapes them.
"""

import logging
import re
from pathlib import Path
from typing import Optional

import arabic_reshaper
from bidi.algorithm import get_display
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

logger = logging.getLogger(__name__)

ARABIC_FONT_NAME = "Amiri"
FALLBACK_FONT_NAME = "Helvetica"

_ARABIC_RE = re.compile(r"[؀-ۿݐ-ݿﭐ-﷿ﹰ-﻿]")

_registered_font: Optional[str] = None
_registration_attempted = False


def contains_arabic(text: str) -> bool:
    return bool(_ARABIC_RE.search(text or ""))


def shape_arabic(text: Optional[str]) -> str:
    """Reshape and reorder text for left-to-right drawing."""
    if not text:
        return ""
    if not contains_arabic(text):
        return text
    return get_display(arabic_reshaper.reshape(str(text)))


def register_arabic_font(font_path: Optional[str]) -> str:
    """
    Register the Arabic TTF font once per process.

    Returns the font name to draw Arabic text with. When no font is
    configured (or it fails to load) the fallback Helvetica name is returned
    and Arabic glyphs will not render.
    """
    global _registered_font, _registration_attempted

    if _registration_attempted:
        return _registered_font or FALLBACK_FONT_NAME
    _registration_attempted = True

    if not font_path or not Path(font_path).exists():
        logger.warning("No Arabic font configured (ARABIC_FONT_PATH=%r); using %s", font_path, FALLBACK_FONT_NAME)
        return FALLBACK_FONT_NAME

    try:
        pdfmetrics.registerFont(TTFont(ARABIC_FONT_NAME, font_path))
    except Exception as e:
        logger.warning("Failed to register Arabic font %s: %s", font_path, e)
        return FALLBACK_FONT_NAME

    _registered_font = ARABIC_FONT_NAME
    return _registered_font
