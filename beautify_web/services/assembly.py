"""Compose slide images back into a presentation."""

import io
from dataclasses import dataclass

from pptx import Presentation
from pptx.util import Inches

from ..exceptions import AssemblyError

BLANK_LAYOUT_INDEX = 6


@dataclass
class SlideImage:
    ordinal: int
    image: bytes
    mime_type: str


def compose_deck(slides: list[SlideImage], width: float, height: float) -> bytes:
    """
    Build a .pptx where each image fills one slide.

    Args:
        slides: Slide images; emitted in ascending ordinal order
        width: Slide width in inches
        height: Slide height in inches

    Returns:
        The presentation file as bytes
    """
    if not slides:
        raise AssemblyError("No slides to assemble")

    presentation = Presentation()
    presentation.slide_width = Inches(width)
    presentation.slide_height = Inches(height)
    layout = presentation.slide_layouts[BLANK_LAYOUT_INDEX]

    for slide_image in sorted(slides, key=lambda s: s.ordinal):
        slide = presentation.slides.add_slide(layout)
        try:
            slide.shapes.add_picture(
                io.BytesIO(slide_image.image),
                0,
                0,
                width=presentation.slide_width,
                height=presentation.slide_height,
            )
        except Exception as e:
            raise AssemblyError(f"Slide {slide_image.ordinal} image could not be placed: {e}") from e

    buffer = io.BytesIO()
    presentation.save(buffer)
    return buffer.getvalue()
