# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Data models for visual element detection.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from visual_extract.models import Detection, ResultStatus

DETECTION_TOOL_NAME = "report_visual_elements"

DETECTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "elements": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "label": {
                        "type": "string",
                        "description": "Short title of the element",
                    },
                    "box_2d": {
                        "type": "array",
                        "items": {"type": "number"},
                        "minItems": 4,
                        "maxItems": 4,
                        "description": "The bounding box [ymin, xmin, ymax, xmax] from 0 to 1000",
                    },
                    "description": {
                        "type": "string",
                        "description": "A one-sentence summary of what this is.",
                    },
                },
                "required": ["label", "box_2d", "description"],
            },
        }
    },
    "required": ["elements"],
}


def parse_detections(payload: Any) -> List[Detection]:
    """
    Validate a detection payload against the required schema.

    Accepts either the bare array of elements or the tool input object
    wrapping it under "elements". Any non-conforming element rejects the
    whole payload.

    Raises:
        ValueError: If the payload does not match the schema
    """
    if isinstance(payload, dict):
        if "elements" not in payload:
            raise ValueError("Detection payload object has no 'elements' array")
        payload = payload["elements"]

    if not isinstance(payload, list):
        raise ValueError(f"Detection payload must be an array, got {type(payload).__name__}")

    detections = []
    for index, element in enumerate(payload):
        try:
            detections.append(Detection.from_dict(element))
        except ValueError as e:
            raise ValueError(f"Invalid detection at index {index}: {str(e)}") from e
    return detections


@dataclass
class DetectionResult:
    """Outcome of one detection call, distinguishing failures from empty pages."""

    status: ResultStatus
    """OK when the model answered with a valid payload, FAILED otherwise."""

    detections: List[Detection] = field(default_factory=list)
    """Detections in model order; always empty when status is FAILED."""

    error: Optional[str] = None
    """Why the call failed, if it did."""

    metering: Dict[str, Any] = field(default_factory=dict)
    """Bedrock usage for the call."""

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK

    @classmethod
    def failed(cls, error: str, metering: Optional[Dict[str, Any]] = None) -> "DetectionResult":
        return cls(status=ResultStatus.FAILED, error=error, metering=metering or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "detections": [d.to_dict() for d in self.detections],
            "error": self.error,
            "metering": self.metering,
        }
