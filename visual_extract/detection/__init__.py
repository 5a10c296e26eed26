# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Detection module for the visual_extract package.

Provides a service for locating visual elements on a page with Bedrock.
"""

from visual_extract.detection.models import (
    DETECTION_SCHEMA,
    DETECTION_TOOL_NAME,
    DetectionResult,
    parse_detections,
)
from visual_extract.detection.service import ElementDetector

__all__ = [
    "ElementDetector",
    "DetectionResult",
    "parse_detections",
    "DETECTION_SCHEMA",
    "DETECTION_TOOL_NAME",
]
