"""
Raster PDF export.

The rendered document is one tall image. It is scaled to the printable page
width and either centred on a single page or cut into consecutive bands of
printable-page height, one band per page. The result is an image-per-page
PDF, so the text is not selectable.
"""

import math
import re
from dataclasses import dataclass, field
from io import BytesIO

from PIL import Image
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from app.core.errors import ExportError
from app.core.logging_config import get_logger

log = get_logger("exporter")


@dataclass(frozen=True)
class ExportOptions:
    target_width_px: int | None = None  # resample the surface to this width first
    page_width_mm: float = 210.0
    page_height_mm: float = 297.0
    margin_mm: float = 20.0

    @property
    def printable_width_mm(self) -> float:
        return self.page_width_mm - 2 * self.margin_mm

    @property
    def printable_height_mm(self) -> float:
        return self.page_height_mm - 2 * self.margin_mm


A4_PORTRAIT = ExportOptions()


@dataclass(frozen=True)
class PageBand:
    top_px: int
    height_px: int
    height_mm: float
    y_mm: float  # distance from the top edge of the page


@dataclass
class ImageSlice:
    page: int
    band: PageBand
    image: Image.Image = field(repr=False)


@dataclass
class ExportResult:
    filename: str
    pages: list[ImageSlice]
    pdf_bytes: bytes = field(repr=False)
    scaled_height_mm: float = 0.0

    @property
    def page_count(self) -> int:
        return len(self.pages)


def scaled_height_mm(width_px: int, height_px: int, options: ExportOptions) -> float:
    return height_px * options.printable_width_mm / width_px


def compute_bands(width_px: int, height_px: int, options: ExportOptions = A4_PORTRAIT) -> list[PageBand]:
    if width_px <= 0 or height_px <= 0:
        raise ValueError(f"Cannot paginate an empty image ({width_px}x{height_px})")
    if options.printable_width_mm <= 0 or options.printable_height_mm <= 0:
        raise ValueError("Margins leave no printable area")

    total_mm = scaled_height_mm(width_px, height_px, options)
    page_mm = options.printable_height_mm
    if total_mm <= page_mm:
        offset = options.margin_mm + (page_mm - total_mm) / 2
        return [PageBand(top_px=0, height_px=height_px, height_mm=total_mm, y_mm=offset)]

    px_per_mm = width_px / options.printable_width_mm
    # Whole pixels only, so no band runs past the printable height
    page_px = max(1, math.floor(page_mm * px_per_mm))
    bands = []
    top = 0
    while top < height_px:
        bottom = min(height_px, top + page_px)
        band_px = bottom - top
        bands.append(
            PageBand(top_px=top, height_px=band_px, height_mm=band_px / px_per_mm, y_mm=options.margin_mm)
        )
        top = bottom
    return bands


def _safe_part(value) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9.\-]+", "_", str(value)).strip("_")
    return cleaned or "unknown"


def export_filename(document_kind: str, student_identifier: str, date_or_semester) -> str:
    return f"{_safe_part(document_kind)}_{_safe_part(student_identifier)}_{_safe_part(date_or_semester)}.pdf"


def export(
    surface: Image.Image,
    document_kind: str,
    student_identifier: str,
    date_or_semester,
    options: ExportOptions = A4_PORTRAIT,
) -> ExportResult:
    filename = export_filename(document_kind, student_identifier, date_or_semester)
    try:
        image = surface.convert("RGB")
        if options.target_width_px and image.width != options.target_width_px:
            height = max(1, round(image.height * options.target_width_px / image.width))
            image = image.resize((options.target_width_px, height), Image.Resampling.LANCZOS)
        width_px, height_px = image.size
        bands = compute_bands(width_px, height_px, options)

        buffer = BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=(options.page_width_mm * mm, options.page_height_mm * mm))
        pdf.setTitle(filename[:-4])
        pages = []
        for number, band in enumerate(bands, start=1):
            piece = image.crop((0, band.top_px, width_px, band.top_px + band.height_px))
            bottom_mm = options.page_height_mm - band.y_mm - band.height_mm
            pdf.drawImage(
                ImageReader(piece),
                options.margin_mm * mm,
                bottom_mm * mm,
                width=options.printable_width_mm * mm,
                height=band.height_mm * mm,
            )
            pdf.showPage()
            pages.append(ImageSlice(page=number, band=band, image=piece))
        pdf.save()
    except ExportError:
        raise
    except Exception as exc:
        log.exception("Export of %s failed", filename)
        raise ExportError() from exc

    log.info("Exported %s (%d page(s))", filename, len(pages))
    return ExportResult(
        filename=filename,
        pages=pages,
        pdf_bytes=buffer.getvalue(),
        scaled_height_mm=scaled_height_mm(width_px, height_px, options),
    )
