"""Vintage newspaper PDF renderer.

Draws the newspaper straight onto a reportlab canvas using the built-in
Japanese CID fonts, so no font files need to ship with the package.

Page layout, top to bottom:
    masthead (title, date, edition, weather, double rule)
    main article with its photo
    sub-articles in two columns, each with a photo
    editorial beside the boxed column
    personal message box (if any)
    advertisements along the bottom
    footer
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass

from PIL import Image
from reportlab.lib.colors import Color
from reportlab.lib.pagesizes import A2, A3
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.pdfgen import canvas

from ..errors import RenderError
from ..newspaper.models import Advertisement, Article, ArticleBundle, ImageSet
from ..newspaper.prompts import format_japanese_date

_logger = logging.getLogger("pipeline")

SERIF_FONT = "HeiseiMin-W3"
SANS_FONT = "HeiseiKakuGo-W5"

PAPER = Color(0.957, 0.925, 0.851)
INK = Color(0.17, 0.15, 0.13)
FADED_INK = Color(0.35, 0.32, 0.28)

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.+)$", re.DOTALL)

# Base page width the layout sizes are tuned for (A3 portrait, points)
_BASE_WIDTH = A3[0]


@dataclass(frozen=True)
class PDFQuality:
    """Page size and image resolution for one output tier."""

    name: str
    pagesize: tuple[float, float]
    dpi: int


PDF_CONFIG: dict[str, PDFQuality] = {
    "standard": PDFQuality("standard", A3, 150),
    "premium": PDFQuality("premium", A3, 300),
    "deluxe": PDFQuality("deluxe", A2, 300),
}


def register_fonts() -> None:
    """Register the Japanese CID fonts with reportlab once per process."""
    registered = pdfmetrics.getRegisteredFontNames()
    for name in (SERIF_FONT, SANS_FONT):
        if name not in registered:
            pdfmetrics.registerFont(UnicodeCIDFont(name))


def wrap_text(text: str, font: str, size: float, width: float) -> list[str]:
    """Wrap text to ``width`` points, breaking between any two characters.

    Japanese text has no spaces to break on, so wrapping is per character.
    Explicit newlines always start a new line.
    """
    lines: list[str] = []
    for paragraph in text.splitlines() or [""]:
        current = ""
        for char in paragraph:
            candidate = current + char
            if current and pdfmetrics.stringWidth(candidate, font, size) > width:
                lines.append(current)
                current = char.lstrip()
            else:
                current = candidate
        lines.append(current)
    return lines


def decode_data_uri(uri: str) -> Image.Image:
    """Decode a base64 image data URI into an RGB Pillow image.

    Raises:
        RenderError: If the URI is not a decodable image.
    """
    match = _DATA_URI_RE.match(uri.strip())
    if not match:
        raise RenderError("Image is not a base64 data URI")
    try:
        raw = base64.b64decode(match.group("data"), validate=False)
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (binascii.Error, OSError, ValueError) as e:
        raise RenderError(f"Could not decode image: {e}") from e
    return image.convert("RGB")


class NewspaperPDFRenderer:
    """Renders an ``ArticleBundle`` and its ``ImageSet`` as a one-sheet PDF.

    Rendering is synchronous and CPU-bound; async callers should run it in a
    worker thread.

    Usage:
        renderer = NewspaperPDFRenderer()
        pdf_bytes = renderer.render(bundle, images, quality="premium")
    """

    def __init__(self, title_prefix: str = "TimeTravel Press"):
        self.title_prefix = title_prefix
        register_fonts()

    def render(self, bundle: ArticleBundle, images: ImageSet, quality: str = "standard") -> bytes:
        """Render the newspaper.

        Args:
            bundle: Text content.
            images: One image per article, main first.
            quality: One of ``PDF_CONFIG``.

        Returns:
            PDF bytes.

        Raises:
            RenderError: Unknown quality, missing images, or slot mismatch.
        """
        if bundle is None or images is None:
            raise RenderError("Rendering requires both articles and images")
        if quality not in PDF_CONFIG:
            raise RenderError(f"Unknown quality: {quality!r} (choose from {', '.join(PDF_CONFIG)})")
        if len(images.sub_images) != len(bundle.sub_articles):
            raise RenderError(
                f"Image slots ({len(images.sub_images)}) do not match "
                f"sub-articles ({len(bundle.sub_articles)})"
            )
        missing = images.missing_indices()
        if missing:
            raise RenderError(f"Image slots missing: {missing}")

        config = PDF_CONFIG[quality]
        decoded = [decode_data_uri(uri) for uri in images.slots()]

        buffer = io.BytesIO()
        layout = _PageLayout(buffer, config)
        layout.canvas.setTitle(f"{self.title_prefix} {bundle.target_date.isoformat()}")
        layout.canvas.setAuthor(bundle.masthead)
        layout.canvas.setSubject(bundle.main_article.headline)

        layout.draw_masthead(bundle)
        layout.draw_main_article(bundle.main_article, decoded[0])
        layout.draw_sub_articles(bundle.sub_articles, decoded[1:])
        layout.draw_opinion(bundle.editorial, bundle.column)
        if bundle.personalization is not None:
            p = bundle.personalization
            layout.draw_message_box(p.occasion, p.recipient_name, p.sender_name, p.message)
        layout.draw_advertisements(bundle.advertisements[:3])
        layout.draw_footer(bundle)
        layout.canvas.save()

        pdf_bytes = buffer.getvalue()
        _logger.info(
            f"PDF_RENDERED | date:{bundle.target_date.isoformat()} | quality:{quality} | "
            f"pages:{layout.page_count} | bytes:{len(pdf_bytes)}"
        )
        return pdf_bytes


class _PageLayout:
    """Cursor-based drawing state for one document."""

    def __init__(self, buffer: io.BytesIO, config: PDFQuality):
        self.config = config
        self.width, self.height = config.pagesize
        self.scale = self.width / _BASE_WIDTH
        self.margin = 40 * self.scale
        self.gutter = 16 * self.scale
        self.content_width = self.width - 2 * self.margin
        self.bottom_reserve = 150 * self.scale
        self.canvas = canvas.Canvas(buffer, pagesize=config.pagesize)
        self.page_count = 1
        self._start_page()

    # -------------------------------------------------------------------------
    # Primitives
    # -------------------------------------------------------------------------

    def _start_page(self) -> None:
        c = self.canvas
        c.setFillColor(PAPER)
        c.rect(0, 0, self.width, self.height, stroke=0, fill=1)
        c.setFillColor(INK)
        c.setStrokeColor(INK)
        self.y = self.height - self.margin

    def _ensure_space(self, needed: float) -> None:
        if self.y - needed < self.margin + self.bottom_reserve:
            self.canvas.showPage()
            self.page_count += 1
            self._start_page()

    def _text(self, text: str, x: float, y: float, font: str, size: float, align: str = "left") -> None:
        c = self.canvas
        c.setFont(font, size)
        if align == "center":
            c.drawCentredString(x, y, text)
        elif align == "right":
            c.drawRightString(x, y, text)
        else:
            c.drawString(x, y, text)

    def _paragraph(
        self,
        text: str,
        x: float,
        y: float,
        width: float,
        font: str,
        size: float,
        max_lines: int | None = None,
    ) -> float:
        """Draw wrapped text from baseline ``y`` down. Returns the next free y."""
        leading = size * 1.5
        lines = wrap_text(text, font, size, width)
        if max_lines is not None and len(lines) > max_lines:
            lines = lines[:max_lines]
            lines[-1] = lines[-1][:-1] + "…" if lines[-1] else "…"
        self.canvas.setFont(font, size)
        for line in lines:
            self.canvas.drawString(x, y, line)
            y -= leading
        return y

    def _image(self, image: Image.Image, x: float, y_top: float, width: float, height: float) -> None:
        """Draw ``image`` cover-cropped into the box whose top-left is (x, y_top)."""
        px_w = max(1, round(width / 72 * self.config.dpi))
        px_h = max(1, round(height / 72 * self.config.dpi))

        src_ratio = image.width / image.height
        box_ratio = px_w / px_h
        if src_ratio > box_ratio:
            new_w = int(image.height * box_ratio)
            left = (image.width - new_w) // 2
            image = image.crop((left, 0, left + new_w, image.height))
        elif src_ratio < box_ratio:
            new_h = int(image.width / box_ratio)
            top = (image.height - new_h) // 2
            image = image.crop((0, top, image.width, top + new_h))
        image = image.resize((px_w, px_h), Image.Resampling.LANCZOS)

        self.canvas.drawImage(ImageReader(image), x, y_top - height, width, height)
        self.canvas.setLineWidth(0.6 * self.scale)
        self.canvas.rect(x, y_top - height, width, height, stroke=1, fill=0)

    def _rule(self, y: float, double: bool = False) -> None:
        c = self.canvas
        c.setLineWidth(1.2 * self.scale)
        c.line(self.margin, y, self.width - self.margin, y)
        if double:
            c.setLineWidth(0.5 * self.scale)
            c.line(self.margin, y - 3 * self.scale, self.width - self.margin, y - 3 * self.scale)

    # -------------------------------------------------------------------------
    # Sections
    # -------------------------------------------------------------------------

    def draw_masthead(self, bundle: ArticleBundle) -> None:
        s = self.scale
        title_size = 54 * s
        self._text(bundle.masthead, self.width / 2, self.y - title_size, SERIF_FONT, title_size, "center")
        self.y -= title_size + 20 * s

        info_size = 11 * s
        self._text(format_japanese_date(bundle.target_date), self.margin, self.y, SANS_FONT, info_size)
        self._text(bundle.edition, self.width / 2, self.y, SANS_FONT, info_size, "center")
        self._text(f"天気: {bundle.weather}", self.width - self.margin, self.y, SANS_FONT, info_size, "right")
        self.y -= 10 * s
        self._rule(self.y, double=True)
        self.y -= 24 * s

    def draw_main_article(self, article: Article, image: Image.Image) -> None:
        s = self.scale
        headline_size = 30 * s
        self._ensure_space(320 * s)

        lines = wrap_text(article.headline, SANS_FONT, headline_size, self.content_width)
        for line in lines:
            self._text(line, self.margin, self.y - headline_size, SANS_FONT, headline_size)
            self.y -= headline_size * 1.25
        if article.subheadline:
            sub_size = 16 * s
            self._text(article.subheadline, self.margin, self.y - sub_size, SERIF_FONT, sub_size)
            self.y -= sub_size * 1.6
        self.y -= 8 * s

        image_width = self.content_width * 0.48
        image_height = image_width * 3 / 4
        image_x = self.width - self.margin - image_width
        self._image(image, image_x, self.y, image_width, image_height)

        body_width = self.content_width - image_width - self.gutter
        body_size = 11.5 * s
        max_lines = int(image_height // (body_size * 1.5))
        self._paragraph(article.content, self.margin, self.y - body_size, body_width, SERIF_FONT, body_size, max_lines)

        self.y -= image_height + 18 * s
        self._rule(self.y)
        self.y -= 20 * s

    def draw_sub_articles(self, articles: list[Article], images: list[Image.Image]) -> None:
        s = self.scale
        column_width = (self.content_width - self.gutter) / 2
        image_height = column_width * 0.5
        headline_size = 16 * s
        body_size = 10 * s
        body_lines = 9
        block_height = headline_size * 2.6 + image_height + 10 * s + body_size * 1.5 * body_lines + 16 * s

        for row_start in range(0, len(articles), 2):
            self._ensure_space(block_height)
            top = self.y
            for offset, (article, image) in enumerate(
                zip(articles[row_start:row_start + 2], images[row_start:row_start + 2])
            ):
                x = self.margin + offset * (column_width + self.gutter)
                y = top
                for line in wrap_text(article.headline, SANS_FONT, headline_size, column_width)[:2]:
                    self._text(line, x, y - headline_size, SANS_FONT, headline_size)
                    y -= headline_size * 1.3
                y -= 6 * s
                self._image(image, x, y, column_width, image_height)
                y -= image_height + 10 * s
                self._paragraph(article.content, x, y - body_size, column_width, SERIF_FONT, body_size, body_lines)
            self.y = top - block_height

        self._rule(self.y)
        self.y -= 20 * s

    def draw_opinion(self, editorial: Article, column: Article) -> None:
        s = self.scale
        body_size = 10.5 * s
        body_lines = 10
        block_height = 30 * s + body_size * 1.5 * body_lines + 20 * s
        self._ensure_space(block_height)

        editorial_width = self.content_width * 0.6
        column_x = self.margin + editorial_width + self.gutter
        column_width = self.content_width - editorial_width - self.gutter
        top = self.y

        self._text(f"社説　{editorial.headline}", self.margin, top - 16 * s, SANS_FONT, 16 * s)
        self._paragraph(editorial.content, self.margin, top - 36 * s, editorial_width, SERIF_FONT, body_size, body_lines)

        c = self.canvas
        c.setLineWidth(1.0 * s)
        c.rect(column_x, top - block_height + 10 * s, column_width, block_height - 10 * s, stroke=1, fill=0)
        inner = 8 * s
        self._text(column.headline, column_x + inner, top - 18 * s, SANS_FONT, 13 * s)
        self._paragraph(
            column.content,
            column_x + inner,
            top - 36 * s,
            column_width - 2 * inner,
            SERIF_FONT,
            body_size * 0.95,
            body_lines,
        )

        self.y = top - block_height - 12 * s

    def draw_message_box(self, occasion: str, recipient: str, sender: str, message: str) -> None:
        s = self.scale
        body_size = 11 * s
        lines = wrap_text(message, SERIF_FONT, body_size, self.content_width - 40 * s)[:4] if message else []
        box_height = 60 * s + len(lines) * body_size * 1.5
        self._ensure_space(box_height + 10 * s)

        c = self.canvas
        c.setLineWidth(1.5 * s)
        c.rect(self.margin + 10 * s, self.y - box_height, self.content_width - 20 * s, box_height, stroke=1, fill=0)

        self._text(f"【{occasion}】", self.width / 2, self.y - 22 * s, SANS_FONT, 14 * s, "center")
        self._text(f"{recipient} 様へ", self.margin + 24 * s, self.y - 42 * s, SERIF_FONT, 12 * s)
        y = self.y - 42 * s - body_size * 1.6
        for line in lines:
            self._text(line, self.margin + 24 * s, y, SERIF_FONT, body_size)
            y -= body_size * 1.5
        self._text(f"{sender} より", self.width - self.margin - 24 * s, self.y - box_height + 10 * s, SERIF_FONT, 11 * s, "right")

        self.y -= box_height + 16 * s

    def draw_advertisements(self, advertisements: list[Advertisement]) -> None:
        if not advertisements:
            return
        s = self.scale
        box_top = self.margin + self.bottom_reserve - 10 * s
        box_height = self.bottom_reserve - 40 * s
        gap = 10 * s
        box_width = (self.content_width - gap * (len(advertisements) - 1)) / len(advertisements)

        c = self.canvas
        for i, ad in enumerate(advertisements):
            x = self.margin + i * (box_width + gap)
            c.setLineWidth((1.4 if ad.style == "vintage" else 0.7) * s)
            c.rect(x, box_top - box_height, box_width, box_height, stroke=1, fill=0)
            self._text(ad.title, x + box_width / 2, box_top - 18 * s, SANS_FONT, 12 * s, "center")
            self._paragraph(ad.content, x + 6 * s, box_top - 34 * s, box_width - 12 * s, SERIF_FONT, 9 * s, 4)

    def draw_footer(self, bundle: ArticleBundle) -> None:
        s = self.scale
        y = self.margin - 4 * s
        self.canvas.setFillColor(FADED_INK)
        self._text(
            f"{bundle.masthead}　{format_japanese_date(bundle.target_date)}　{bundle.edition}",
            self.margin,
            y,
            SERIF_FONT,
            8 * s,
        )
        self._text("TimeTravel Press", self.width - self.margin, y, SANS_FONT, 8 * s, "right")
        self.canvas.setFillColor(INK)
