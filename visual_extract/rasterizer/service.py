# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Page rasterization for uploaded documents.

Turns an image or a paginated document plus a requested page number into
a single RGB pixel buffer. Paginated documents are rendered with PyMuPDF
at a fixed scale; images are decoded with Pillow at their native size.
"""

import logging
import time
from typing import Any, Dict, Optional

from PIL import Image

from visual_extract import image
from visual_extract.models import PageRaster, RenderFailure, SourceDocument, UnsupportedFormat

logger = logging.getLogger(__name__)

KIND_IMAGE = "image"
KIND_PDF = "pdf"

IMAGE_EXTENSIONS = frozenset({
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".webp",
    ".bmp",
    ".tiff",
    ".tif",
})

PDF_CONTENT_TYPES = frozenset({"application/pdf", "application/x-pdf"})


def clamp_page_number(page_number: Optional[int], page_count: int) -> int:
    """
    Clamp a 1-based page number into [1, page_count].

    Out-of-range requests resolve to the nearest boundary page.
    """
    if page_count < 1:
        raise ValueError(f"page_count must be at least 1, got {page_count}")
    requested = 1 if page_number is None else int(page_number)
    return min(max(1, requested), page_count)


def detect_document_kind(document: SourceDocument) -> str:
    """
    Decide whether a document is an image or a PDF.

    The declared content type wins, then the file extension, then the
    leading bytes.

    Raises:
        UnsupportedFormat: If the document is neither
    """
    content_type = (document.content_type or "").lower()
    extension = document.extension

    if content_type in PDF_CONTENT_TYPES:
        return KIND_PDF
    if content_type.startswith("image/"):
        return KIND_IMAGE
    if extension == ".pdf":
        return KIND_PDF
    if extension in IMAGE_EXTENSIONS:
        return KIND_IMAGE
    if document.data.lstrip()[:5] == b"%PDF-":
        return KIND_PDF
    if image.detect_image_format(document.data):
        return KIND_IMAGE

    raise UnsupportedFormat(
        f"Unsupported document '{document.filename or 'upload'}' "
        f"(content type: {document.content_type or 'unknown'})"
    )


class PageRasterizer:
    """Renders one page of an uploaded document to an RGB raster."""

    def __init__(
        self,
        scale: float = 2.0,
        config: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the rasterizer.

        Args:
            scale: Render scale for paginated documents relative to native page units
            config: Optional configuration; rasterization.scale overrides scale
        """
        raster_config = (config or {}).get("rasterization", {})
        self.scale = float(raster_config.get("scale", scale))
        if self.scale <= 0:
            raise ValueError(f"Rasterization scale must be positive, got {self.scale}")
        logger.debug(f"PageRasterizer initialized with scale {self.scale}")

    def rasterize(self, document: SourceDocument, page_number: Optional[int] = 1) -> PageRaster:
        """
        Render the requested page of a document.

        Args:
            document: Uploaded image or paginated document
            page_number: 1-based page to render; clamped into range and
                         ignored for plain images

        Returns:
            PageRaster holding the decoded page

        Raises:
            UnsupportedFormat: If the document is neither an image nor a PDF
            RenderFailure: If the document cannot be decoded or rendered
        """
        kind = detect_document_kind(document)
        if kind == KIND_IMAGE:
            return self._rasterize_image(document)
        return self._rasterize_pdf(document, page_number)

    def get_page_count(self, document: SourceDocument) -> int:
        """Return the number of pages in a document (1 for images)."""
        if detect_document_kind(document) == KIND_IMAGE:
            return 1
        pdf_document = self._open_pdf(document)
        try:
            return pdf_document.page_count
        finally:
            pdf_document.close()

    def _rasterize_image(self, document: SourceDocument) -> PageRaster:
        try:
            page_image = image.load_image(document.data)
        except Exception as e:
            raise UnsupportedFormat(
                f"Could not decode image '{document.filename or 'upload'}': {str(e)}"
            ) from e

        logger.info(f"Loaded image page {page_image.width}x{page_image.height}")
        return PageRaster(image=page_image, page_number=1, page_count=1, scale=1.0)

    def _open_pdf(self, document: SourceDocument):
        try:
            import fitz  # PyMuPDF
        except ImportError as e:
            raise RenderFailure("PDF render engine (PyMuPDF) is not available") from e

        try:
            pdf_document = fitz.open(stream=document.data, filetype="pdf")
            page_count = pdf_document.page_count
        except Exception as e:
            raise RenderFailure(f"Could not open PDF document: {str(e)}") from e

        if page_count < 1:
            pdf_document.close()
            raise RenderFailure("PDF document has no pages")
        return pdf_document

    def _rasterize_pdf(self, document: SourceDocument, page_number: Optional[int]) -> PageRaster:
        t0 = time.time()
        pdf_document = self._open_pdf(document)
        try:
            import fitz  # PyMuPDF

            page_count = pdf_document.page_count
            actual_page = clamp_page_number(page_number, page_count)
            if actual_page != page_number:
                logger.info(f"Requested page {page_number} clamped to {actual_page} of {page_count}")

            page = pdf_document.load_page(actual_page - 1)
            pix = page.get_pixmap(matrix=fitz.Matrix(self.scale, self.scale), alpha=False)
            page_image = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
        except Exception as e:
            raise RenderFailure(f"Failed to render page {page_number}: {str(e)}") from e
        finally:
            pdf_document.close()

        t1 = time.time()
        logger.info(
            f"Rendered page {actual_page}/{page_count} at {self.scale}x "
            f"to {page_image.width}x{page_image.height}"
        )
        logger.debug(f"Time for page rendering: {t1 - t0:.6f} seconds")
        return PageRaster(
            image=page_image,
            page_number=actual_page,
            page_count=page_count,
            scale=self.scale,
        )
