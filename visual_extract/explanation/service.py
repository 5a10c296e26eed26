# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Explanation service for extracted visual elements.

Asks a Bedrock model for a markdown explanation of one cropped region.
The caller always receives text: a fixed fallback replaces errors and
empty answers.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from visual_extract import image, metrics
from visual_extract.bedrock import BedrockClient
from visual_extract.config import DEFAULT_CONFIG
from visual_extract.models import ResultStatus

logger = logging.getLogger(__name__)

EMPTY_EXPLANATION_FALLBACK = "No explanation could be generated."
ERROR_EXPLANATION_FALLBACK = "Error generating explanation."


@dataclass
class ExplanationResult:
    """Outcome of one explanation call."""

    status: ResultStatus
    text: str
    """Model text, or the fallback string when status is FAILED."""

    error: Optional[str] = None
    metering: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK


class ElementExplainer:
    """Produces free-form markdown explanations of cropped elements."""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        bedrock_client: Optional[BedrockClient] = None,
        region: Optional[str] = None,
        metrics_enabled: bool = True,
    ):
        """
        Initialize the explainer.

        Args:
            config: Configuration dictionary; the "explanation" section is used
            bedrock_client: Client used for the remote call
            region: AWS region when no client is given
            metrics_enabled: Whether to publish explanation metrics
        """
        self.config = config or DEFAULT_CONFIG
        explanation_config = {**DEFAULT_CONFIG["explanation"], **self.config.get("explanation", {})}

        self.model_id = explanation_config.get("model")
        if not self.model_id:
            raise ValueError("No model ID specified in explanation configuration")
        self.temperature = float(explanation_config.get("temperature", 0.0))
        self.max_tokens = int(explanation_config.get("max_tokens", 4096))
        self.system_prompt = explanation_config.get("system_prompt", "")
        self.task_prompt = explanation_config.get("task_prompt")
        if not self.task_prompt or "{LABEL}" not in self.task_prompt:
            raise ValueError("Explanation task_prompt must contain the {LABEL} placeholder")

        self.client = bedrock_client or BedrockClient(region=region, metrics_enabled=metrics_enabled)
        self.metrics_enabled = metrics_enabled
        logger.info(f"Initialized element explainer using model {self.model_id}")

    def build_prompt(self, label: str) -> str:
        return self.client.format_prompt(self.task_prompt, {"LABEL": label}, required_placeholders=["LABEL"])

    def explain(self, cropped_image: bytes, label: str) -> str:
        """
        Explain one extracted element.

        Args:
            cropped_image: JPEG bytes of the cropped region
            label: Label reported by the detector

        Returns:
            Markdown explanation, or a fallback string; never raises
        """
        return self.explain_with_result(cropped_image, label).text

    def explain_with_result(self, cropped_image: bytes, label: str) -> ExplanationResult:
        """Explain one element and report whether the call succeeded."""
        t0 = time.time()
        metering: Dict[str, Any] = {}

        try:
            content = [
                {"text": self.build_prompt(label)},
                image.prepare_bedrock_image_attachment(cropped_image),
            ]
            response_with_metering = self.client.invoke_model(
                model_id=self.model_id,
                system_prompt=self.system_prompt,
                content=content,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
            metering = response_with_metering.get("metering", {})
            text = self.client.extract_text_from_response(response_with_metering)
        except Exception as e:
            logger.warning(f"Explanation of '{label}' failed: {str(e)}")
            self._put_metric("ExplanationFailures", 1)
            return ExplanationResult(
                status=ResultStatus.FAILED,
                text=ERROR_EXPLANATION_FALLBACK,
                error=str(e),
                metering=metering,
            )

        if not text or not text.strip():
            logger.warning(f"Explanation of '{label}' came back empty")
            self._put_metric("ExplanationFailures", 1)
            return ExplanationResult(
                status=ResultStatus.FAILED,
                text=EMPTY_EXPLANATION_FALLBACK,
                error="empty response",
                metering=metering,
            )

        logger.info(f"Explained '{label}' in {time.time() - t0:.2f} seconds")
        return ExplanationResult(status=ResultStatus.OK, text=text, metering=metering)

    def _put_metric(self, name: str, value: float):
        if self.metrics_enabled:
            metrics.put_metric(name, value, component="explanation")
