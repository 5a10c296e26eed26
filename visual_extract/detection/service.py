# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Detection service for visual elements on a document page.

Sends the rendered page to a Bedrock vision model with a forced tool whose
input schema describes the expected detections, then validates the answer.
Failures never propagate: callers of detect() receive an empty list, while
detect_with_result() exposes whether the call failed.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

from visual_extract import image, metrics, utils
from visual_extract.bedrock import BedrockClient
from visual_extract.config import DEFAULT_CONFIG
from visual_extract.detection.models import (
    DETECTION_SCHEMA,
    DETECTION_TOOL_NAME,
    DetectionResult,
    parse_detections,
)
from visual_extract.models import Detection, ResultStatus

logger = logging.getLogger(__name__)


class ElementDetector:
    """Detects diagrams, photos, charts, illustrations and maps on a page image."""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        bedrock_client: Optional[BedrockClient] = None,
        region: Optional[str] = None,
        metrics_enabled: bool = True,
    ):
        """
        Initialize the detector.

        Args:
            config: Configuration dictionary; the "detection" section is used
            bedrock_client: Client used for the remote call
            region: AWS region when no client is given
            metrics_enabled: Whether to publish detection metrics
        """
        self.config = config or DEFAULT_CONFIG
        detection_config = {**DEFAULT_CONFIG["detection"], **self.config.get("detection", {})}

        self.model_id = detection_config.get("model")
        if not self.model_id:
            raise ValueError("No model ID specified in detection configuration")
        self.temperature = float(detection_config.get("temperature", 0.0))
        self.max_tokens = int(detection_config.get("max_tokens", 4096))
        self.system_prompt = detection_config.get("system_prompt", "")
        self.task_prompt = detection_config.get("task_prompt")
        if not self.task_prompt:
            raise ValueError("No task_prompt found in detection configuration")

        self.client = bedrock_client or BedrockClient(region=region, metrics_enabled=metrics_enabled)
        self.metrics_enabled = metrics_enabled
        logger.info(f"Initialized element detector using model {self.model_id}")

    @property
    def tool_config(self) -> Dict[str, Any]:
        """Converse toolConfig forcing the model to answer with the detection schema."""
        return {
            "tools": [
                {
                    "toolSpec": {
                        "name": DETECTION_TOOL_NAME,
                        "description": "Report every visual element found on the page.",
                        "inputSchema": {"json": DETECTION_SCHEMA},
                    }
                }
            ],
            "toolChoice": {"tool": {"name": DETECTION_TOOL_NAME}},
        }

    def detect(self, page_image: bytes) -> List[Detection]:
        """
        Detect visual elements on an encoded page image.

        Args:
            page_image: JPEG bytes of the rendered page

        Returns:
            Detections in model order; empty if none were found or the call failed
        """
        return self.detect_with_result(page_image).detections

    def detect_with_result(self, page_image: bytes) -> DetectionResult:
        """
        Detect visual elements and report the outcome explicitly.

        Args:
            page_image: JPEG bytes of the rendered page

        Returns:
            DetectionResult with status OK (possibly zero detections) or FAILED
        """
        t0 = time.time()
        metering: Dict[str, Any] = {}

        try:
            content = [
                {"text": self.task_prompt},
                image.prepare_bedrock_image_attachment(page_image),
            ]
            response_with_metering = self.client.invoke_model(
                model_id=self.model_id,
                system_prompt=self.system_prompt,
                content=content,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                tool_config=self.tool_config,
            )
            metering = response_with_metering.get("metering", {})
            payload = self._extract_payload(response_with_metering)
            detections = parse_detections(payload)
        except Exception as e:
            logger.warning(f"Detection failed, reporting no elements: {str(e)}")
            self._put_metric("DetectionFailures", 1)
            return DetectionResult.failed(str(e), metering)

        t1 = time.time()
        logger.info(f"Detected {len(detections)} visual elements in {t1 - t0:.2f} seconds")
        self._put_metric("DetectionsReturned", len(detections))
        return DetectionResult(status=ResultStatus.OK, detections=detections, metering=metering)

    def _extract_payload(self, response_with_metering: Dict[str, Any]) -> Any:
        """
        Pull the detection payload out of a Bedrock response.

        Prefers the forced tool call; falls back to JSON in the text answer.

        Raises:
            ValueError: If the response carries neither
        """
        tool_input = self.client.extract_tool_input(response_with_metering, DETECTION_TOOL_NAME)
        if tool_input is not None:
            return tool_input

        text = self.client.extract_text_from_response(response_with_metering)
        if not text.strip():
            raise ValueError("Detection response contained no tool call and no text")

        logger.debug("Model answered in text instead of calling the detection tool")
        return json.loads(utils.extract_json_from_text(text))

    def _put_metric(self, name: str, value: float):
        if self.metrics_enabled:
            metrics.put_metric(name, value, component="detection")
