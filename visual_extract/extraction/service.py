# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Region extraction from a rendered page.

Maps each detection's normalized box onto the page raster's pixel grid
and copies that region into its own JPEG. Pixels are copied 1:1 without
scaling; parts of a box outside the page are filled with black. The step
is purely computational and deterministic for a given raster and
detection list.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from PIL import Image

from visual_extract import image
from visual_extract.models import Detection, ExtractedItem, NormalizedBox, PageRaster

logger = logging.getLogger(__name__)

NORMALIZED_SCALE = 1000


@dataclass(frozen=True)
class PixelRegion:
    """Integer pixel rectangle on the page raster."""

    left: int
    top: int
    width: int
    height: int

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def as_crop_box(self) -> Tuple[int, int, int, int]:
        return (self.left, self.top, self.left + self.width, self.top + self.height)


EMPTY_REGION = PixelRegion(left=0, top=0, width=0, height=0)


def to_pixel_region(box: NormalizedBox, page_width: int, page_height: int) -> PixelRegion:
    """
    Convert a normalized box into a pixel rectangle on a page.

    left = xmin/1000 * W, top = ymin/1000 * H,
    width = (xmax - xmin)/1000 * W, height = (ymax - ymin)/1000 * H,
    each rounded to the nearest pixel. Inverted boxes clamp to zero area.
    """
    left = box.xmin / NORMALIZED_SCALE * page_width
    top = box.ymin / NORMALIZED_SCALE * page_height
    width = (box.xmax - box.xmin) / NORMALIZED_SCALE * page_width
    height = (box.ymax - box.ymin) / NORMALIZED_SCALE * page_height

    return PixelRegion(
        left=int(round(left)),
        top=int(round(top)),
        width=max(0, int(round(width))),
        height=max(0, int(round(height))),
    )


def crop_region(page: Image.Image, region: PixelRegion) -> Image.Image:
    """Copy a pixel region out of the page into a new image of exactly the region's size."""
    if region.is_empty:
        return Image.new("RGB", (0, 0))
    return page.crop(region.as_crop_box())


class RegionExtractor:
    """Crops every detection out of a page raster, preserving detection order."""

    def __init__(self, jpeg_quality: float = 0.9, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the extractor.

        Args:
            jpeg_quality: JPEG quality for each crop (fraction or percentage)
            config: Optional configuration; extraction.jpeg_quality overrides jpeg_quality
        """
        extraction_config = (config or {}).get("extraction", {})
        self.jpeg_quality = float(extraction_config.get("jpeg_quality", jpeg_quality))

    def extract(self, page_raster: PageRaster, detection: Detection) -> Tuple[bytes, PixelRegion]:
        """
        Crop one detection and encode it.

        Returns:
            Tuple of (JPEG bytes, pixel region); bytes are empty and the region is
            zero-sized when the box is degenerate or the crop cannot be encoded
        """
        if detection.box.is_degenerate:
            logger.warning(
                f"Detection '{detection.label}' has a degenerate box {detection.box.to_list()}, "
                f"producing an empty crop"
            )
            return b"", EMPTY_REGION

        try:
            region = to_pixel_region(detection.box, page_raster.width, page_raster.height)
            if region.is_empty:
                logger.warning(
                    f"Detection '{detection.label}' box {detection.box.to_list()} rounds to "
                    f"{region.width}x{region.height} pixels, producing an empty crop"
                )
                return b"", region

            cropped = crop_region(page_raster.image, region)
            return image.encode_jpeg(cropped, self.jpeg_quality), region
        except Exception as e:
            logger.warning(
                f"Could not crop detection '{detection.label}' with box {detection.box.to_list()}: {str(e)}"
            )
            return b"", EMPTY_REGION

    def extract_all(
        self,
        page_raster: PageRaster,
        detections: List[Detection],
        generation: int = 0,
    ) -> List[ExtractedItem]:
        """
        Crop every detection out of the page.

        Args:
            page_raster: The rendered page
            detections: Detections in model order
            generation: Scan generation recorded on each item

        Returns:
            One ExtractedItem per detection, in the same order
        """
        items = []
        for detection in detections:
            image_data, region = self.extract(page_raster, detection)
            items.append(
                ExtractedItem(
                    id=str(uuid.uuid4()),
                    label=detection.label,
                    description=detection.description,
                    image_data=image_data,
                    width=region.width,
                    height=region.height,
                    generation=generation,
                )
            )

        logger.info(
            f"Extracted {len(items)} regions from {page_raster.width}x{page_raster.height} page"
        )
        return items
