# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Extraction module for the visual_extract package.

Crops detected regions out of a rendered page.
"""

from visual_extract.extraction.service import (
    PixelRegion,
    RegionExtractor,
    crop_region,
    to_pixel_region,
)

__all__ = ["RegionExtractor", "PixelRegion", "to_pixel_region", "crop_region"]
