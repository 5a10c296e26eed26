# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Rasterizer module for the visual_extract package.

Renders a single page of an uploaded image or PDF to an RGB raster.
"""

from visual_extract.rasterizer.service import (
    IMAGE_EXTENSIONS,
    PageRasterizer,
    clamp_page_number,
    detect_document_kind,
)

__all__ = ["PageRasterizer", "clamp_page_number", "detect_document_kind", "IMAGE_EXTENSIONS"]
