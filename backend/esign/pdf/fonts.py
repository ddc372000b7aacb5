"""Font resolution for PDF output.

Vietnamese text needs a TrueType font with full Latin Extended coverage; the
built-in Type 1 fonts are used only when no such font is installed.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from reportlab.lib.fonts import addMapping
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

logger = logging.getLogger(__name__)

BODY_FONT_NAME = "ESignBody"
BODY_BOLD_FONT_NAME = "ESignBody-Bold"
SCRIPT_FONT_NAME = "ESignScript"

_FONT_DIRS = [
    Path("/usr/share/fonts/truetype/dejavu"),
    Path("/usr/share/fonts/dejavu"),
    Path("/usr/share/fonts/TTF"),
    Path("/usr/share/fonts/truetype/liberation"),
    Path("/Library/Fonts"),
    Path("C:/Windows/Fonts"),
]
_BODY_CANDIDATES = ["DejaVuSerif.ttf", "LiberationSerif-Regular.ttf", "DejaVuSans.ttf", "times.ttf"]
_BOLD_CANDIDATES = ["DejaVuSerif-Bold.ttf", "LiberationSerif-Bold.ttf", "DejaVuSans-Bold.ttf", "timesbd.ttf"]
_SCRIPT_CANDIDATES = ["DancingScript-Regular.ttf", "DancingScript[wght].ttf"]


@dataclass(frozen=True)
class PdfFonts:
    """Registered font names for each role."""

    body: str
    bold: str
    script: str


def _first_existing(candidates: list[str], extra_dir: Path | None = None) -> Path | None:
    dirs = ([extra_dir] if extra_dir else []) + _FONT_DIRS
    for directory in dirs:
        for name in candidates:
            path = directory / name
            if path.is_file():
                return path
    return None


def _register_ttf_font(font_name: str, font_path: Path) -> bool:
    if font_name in pdfmetrics.getRegisteredFontNames():
        return True
    try:
        pdfmetrics.registerFont(TTFont(font_name, str(font_path)))
        return True
    except Exception as e:
        logger.warning(f"[pdf] failed to register font {font_name} from {font_path}: {e}")
        return False


@lru_cache
def resolve_fonts(font_path: str | None = None) -> PdfFonts:
    """Register and return the fonts used by the structured layout.

    Args:
        font_path: Optional TTF for body text; its directory is also searched
            for bold and script companions

    Returns:
        PdfFonts naming registered fonts (built-in fallbacks if none found)
    """
    explicit = Path(font_path) if font_path else None
    extra_dir = explicit.parent if explicit else None

    body_path = explicit if explicit and explicit.is_file() else _first_existing(_BODY_CANDIDATES)
    if body_path is None or not _register_ttf_font(BODY_FONT_NAME, body_path):
        logger.warning("[pdf] no TrueType body font found, Vietnamese glyphs may be missing")
        return PdfFonts(body="Times-Roman", bold="Times-Bold", script="Times-Italic")

    bold = BODY_FONT_NAME
    bold_path = _first_existing(_BOLD_CANDIDATES, extra_dir)
    if bold_path is not None and _register_ttf_font(BODY_BOLD_FONT_NAME, bold_path):
        bold = BODY_BOLD_FONT_NAME

    # <b> in paragraph markup resolves through the family mapping
    addMapping(BODY_FONT_NAME, 0, 0, BODY_FONT_NAME)
    addMapping(BODY_FONT_NAME, 1, 0, bold)
    addMapping(BODY_FONT_NAME, 0, 1, BODY_FONT_NAME)
    addMapping(BODY_FONT_NAME, 1, 1, bold)

    script = BODY_FONT_NAME
    script_path = _first_existing(_SCRIPT_CANDIDATES, extra_dir)
    if script_path is not None and _register_ttf_font(SCRIPT_FONT_NAME, script_path):
        script = SCRIPT_FONT_NAME

    logger.info(f"[pdf] fonts body={body_path.name} bold={bold} script={script}")
    return PdfFonts(body=BODY_FONT_NAME, bold=bold, script=script)
