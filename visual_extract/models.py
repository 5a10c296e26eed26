# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Data model for visual element extraction.

This module defines the objects that flow through a scan: the uploaded
source document, the rendered page raster, the detections returned by
the remote model and the cropped items held by the scan session.
"""

import math
import mimetypes
import numbers
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class VisualExtractError(Exception):
    """Base class for errors raised by the visual_extract package."""


class UnsupportedFormat(VisualExtractError):
    """The input file is neither an image nor a supported paginated document."""


class RenderFailure(VisualExtractError):
    """The document render engine failed or is unavailable."""


class ScanFailed(VisualExtractError):
    """A scan was aborted before it could produce extracted items."""


class ItemNotFound(VisualExtractError, KeyError):
    """No extracted item with the requested id exists in the session."""


class SessionState(Enum):
    """Scan session lifecycle state."""

    IDLE = "IDLE"  # No document loaded, no items
    SCANNING = "SCANNING"  # Rasterize, detect and extract in progress
    READY = "READY"  # Page raster and extracted items available


class ResultStatus(Enum):
    """Outcome of a remote model call."""

    OK = "OK"
    FAILED = "FAILED"


@dataclass(frozen=True)
class SourceDocument:
    """An uploaded file: either a single image or a paginated document."""

    data: bytes
    filename: str = ""
    content_type: Optional[str] = None

    @classmethod
    def from_path(cls, path: str) -> "SourceDocument":
        """Load a document from disk, guessing its MIME type from the extension."""
        with open(path, "rb") as f:
            data = f.read()
        content_type, _ = mimetypes.guess_type(path)
        return cls(data=data, filename=os.path.basename(path), content_type=content_type)

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename)[1].lower()


@dataclass
class PageRaster:
    """
    One rendered page held as a decoded RGB pixel buffer.

    The buffer is kept for cropping; it is only encoded to JPEG when it
    is sent to the detector or displayed.
    """

    image: Any  # PIL.Image.Image in RGB mode
    page_number: int = 1
    page_count: int = 1
    scale: float = 1.0

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def to_jpeg(self, quality: float = 0.95) -> bytes:
        """Encode the page as JPEG bytes."""
        from visual_extract.image import encode_jpeg

        return encode_jpeg(self.image, quality)


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool) and math.isfinite(value)


@dataclass(frozen=True)
class NormalizedBox:
    """
    Bounding box as fractions of the page scaled by 1000.

    Values are stored as returned by the model; ymin <= ymax and
    xmin <= xmax are expected but not guaranteed.
    """

    ymin: float
    xmin: float
    ymax: float
    xmax: float

    @classmethod
    def from_list(cls, values: Any) -> "NormalizedBox":
        """Create a box from a [ymin, xmin, ymax, xmax] list."""
        if not isinstance(values, (list, tuple)) or len(values) != 4:
            raise ValueError(f"box_2d must be a list of exactly four numbers, got {values!r}")
        if not all(_is_number(v) for v in values):
            raise ValueError(f"box_2d values must be finite numbers, got {values!r}")
        ymin, xmin, ymax, xmax = values
        return cls(ymin=ymin, xmin=xmin, ymax=ymax, xmax=xmax)

    def to_list(self) -> List[float]:
        return [self.ymin, self.xmin, self.ymax, self.xmax]

    @property
    def is_degenerate(self) -> bool:
        """True when the box is inverted on either axis."""
        return self.ymax < self.ymin or self.xmax < self.xmin


@dataclass(frozen=True)
class Detection:
    """One labeled visual element reported by the detection model."""

    label: str
    box: NormalizedBox
    description: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Detection":
        """
        Create a Detection from a model response object.

        Raises:
            ValueError: If a required field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError(f"Detection must be an object, got {type(data).__name__}")

        missing = [key for key in ("label", "box_2d", "description") if key not in data]
        if missing:
            raise ValueError(f"Detection is missing required fields: {missing}")

        label = data["label"]
        description = data["description"]
        if not isinstance(label, str):
            raise ValueError(f"Detection label must be a string, got {label!r}")
        if not isinstance(description, str):
            raise ValueError(f"Detection description must be a string, got {description!r}")

        return cls(label=label, box=NormalizedBox.from_list(data["box_2d"]), description=description)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "box_2d": self.box.to_list(),
            "description": self.description,
        }


@dataclass
class ExtractedItem:
    """A cropped region of the page, created 1:1 from a Detection."""

    id: str
    label: str
    description: str
    image_data: bytes = b""
    """JPEG bytes of the crop; empty for zero-area regions."""

    width: int = 0
    height: int = 0

    explanation: Optional[str] = None
    """Most recent explanation fetched for this item, if any."""

    generation: int = 0
    """Scan generation that produced this item."""

    @property
    def is_empty(self) -> bool:
        return not self.image_data

    def to_data_url(self) -> str:
        """Return the crop as a data URL for display."""
        from visual_extract.image import to_data_url

        return to_data_url(self.image_data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation (without image bytes)."""
        return {
            "id": self.id,
            "label": self.label,
            "description": self.description,
            "width": self.width,
            "height": self.height,
        }


@dataclass
class ScanSummary:
    """Snapshot of a scan session for display surfaces."""

    state: SessionState
    generation: int
    page_number: Optional[int] = None
    page_count: Optional[int] = None
    items: List[ExtractedItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "generation": self.generation,
            "page_number": self.page_number,
            "page_count": self.page_count,
            "item_count": len(self.items),
            "items": [item.to_dict() for item in self.items],
        }
