"""Media-type helpers for display labels."""

from typing import Optional, Tuple

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
FOLDER_GLYPH = "📁"
DEFAULT_GLYPH = "📄"

# Checked in order; the first rule with a matching substring wins.
GLYPH_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("audio",), "🎵"),
    (("video",), "🎬"),
    (("image",), "🖼️"),
    (("pdf",), "📕"),
    (("spreadsheet", "excel"), "📊"),
    (("presentation", "powerpoint"), "📽️"),
    (("document", "word"), "📝"),
)


def media_glyph(mime_type: Optional[str]) -> str:
    """Return the display glyph for a media type string."""
    mime_type = mime_type or ""
    for needles, glyph in GLYPH_RULES:
        if any(needle in mime_type for needle in needles):
            return glyph
    return DEFAULT_GLYPH


def display_label(name: str, mime_type: Optional[str], is_folder: bool = False) -> str:
    """Prefix a name with its glyph, e.g. ``"📕 report.pdf"``."""
    glyph = FOLDER_GLYPH if is_folder else media_glyph(mime_type)
    return f"{glyph} {name}"
