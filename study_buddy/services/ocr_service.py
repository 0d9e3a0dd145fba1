"""Text extraction for uploaded study documents.

PDF pages are read from their embedded text layer with PyMuPDF. Scanned
pages (no text layer) and plain images go through Tesseract after a light
grayscale/contrast preprocessing pass, mirroring what the browser client did
with pdf.js and tesseract.js.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import fitz
import pytesseract
from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger('study_buddy.ocr')

METHOD_TEXT_LAYER = 'text'
METHOD_OCR = 'ocr'
METHOD_MIXED = 'mixed'


class ExtractionError(Exception):
    """The uploaded bytes could not be read as a PDF or image."""


@dataclass
class ExtractionResult:
    """Extracted document text, one entry per page."""

    pages: List[str] = field(default_factory=list)
    method: str = METHOD_TEXT_LAYER

    @property
    def text(self) -> str:
        return '\n\n'.join(page for page in self.pages if page)

    def to_dict(self):
        return {'text': self.text, 'pages': list(self.pages), 'method': self.method}


def stretch_contrast(image: Image.Image, contrast: float = 1.5) -> Image.Image:
    """Grayscale the image and push pixel values away from mid-gray."""
    gray = ImageOps.grayscale(image)
    return gray.point(lambda value: max(0, min(255, int((value - 128) * contrast + 128))))


class TextExtractor:
    """Extracts text from PDFs and images.

    Args:
        lang: Tesseract language code.
        tesseract_cmd: Path to the Tesseract binary, or ``None`` for the
            system default.
        render_scale: Zoom factor used when rasterizing scanned PDF pages.
        contrast: Contrast multiplier applied before OCR.
    """

    def __init__(
        self,
        lang: str = 'eng',
        tesseract_cmd: Optional[str] = None,
        render_scale: float = 2.0,
        contrast: float = 1.5,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.lang = lang or 'eng'
        self.render_scale = render_scale
        self.contrast = contrast

    def ocr_image(self, image: Image.Image, preprocess: bool = True) -> str:
        if preprocess:
            image = stretch_contrast(image, self.contrast)
        return (pytesseract.image_to_string(image, lang=self.lang) or '').strip()

    def extract_image(self, data: bytes) -> ExtractionResult:
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise ExtractionError(f'Unreadable image: {exc}') from exc
        text = self.ocr_image(image)
        logger.info('OCR extracted %d characters from image', len(text))
        return ExtractionResult(pages=[text], method=METHOD_OCR)

    def render_page(self, page) -> Image.Image:
        matrix = fitz.Matrix(self.render_scale, self.render_scale)
        pixmap = page.get_pixmap(matrix=matrix)
        return Image.open(io.BytesIO(pixmap.tobytes('png')))

    def extract_pdf(self, data: bytes) -> ExtractionResult:
        try:
            document = fitz.open(stream=data, filetype='pdf')
        except Exception as exc:
            raise ExtractionError(f'Unreadable PDF: {exc}') from exc
        if document.page_count == 0:
            document.close()
            raise ExtractionError('PDF has no pages')

        pages = []
        ocr_pages = 0
        with document:
            for page in document:
                text = (page.get_text('text') or '').strip()
                if not text:
                    text = self.ocr_image(self.render_page(page))
                    ocr_pages += 1
                pages.append(text)

        if ocr_pages == 0:
            method = METHOD_TEXT_LAYER
        elif ocr_pages == len(pages):
            method = METHOD_OCR
        else:
            method = METHOD_MIXED
        logger.info('Extracted %d PDF pages (%d via OCR)', len(pages), ocr_pages)
        return ExtractionResult(pages=pages, method=method)

    def extract(self, data: bytes, kind: str) -> ExtractionResult:
        if kind == 'pdf':
            return self.extract_pdf(data)
        if kind == 'image':
            return self.extract_image(data)
        raise ExtractionError(f'Unsupported document type: {kind or "unknown"}')
