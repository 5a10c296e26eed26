# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Unit tests for the element explanation service.
"""

from unittest.mock import patch

import pytest

from visual_extract.config import DEFAULT_CONFIG
from visual_extract.explanation import (
    EMPTY_EXPLANATION_FALLBACK,
    ERROR_EXPLANATION_FALLBACK,
    ElementExplainer,
)
from visual_extract.models import ResultStatus


@pytest.mark.unit
class TestElementExplainer:
    """Tests for ElementExplainer."""

    @pytest.fixture
    def crop_bytes(self, make_image):
        return make_image(480, 180, (30, 90, 200))

    @pytest.fixture
    def explainer(self, mock_bedrock_client):
        return ElementExplainer(bedrock_client=mock_bedrock_client, metrics_enabled=False)

    def test_init_uses_default_config(self, explainer):
        assert explainer.model_id == DEFAULT_CONFIG["explanation"]["model"]
        assert explainer.system_prompt == DEFAULT_CONFIG["explanation"]["system_prompt"]

    def test_init_requires_label_placeholder(self, mock_bedrock_client):
        config = {"explanation": {"task_prompt": "Explain this image."}}
        with pytest.raises(ValueError, match="LABEL"):
            ElementExplainer(config=config, bedrock_client=mock_bedrock_client)

    def test_build_prompt_substitutes_label(self, mock_bedrock_client):
        config = {"explanation": {"task_prompt": "Explain the {LABEL} at 100% detail."}}
        explainer = ElementExplainer(config=config, bedrock_client=mock_bedrock_client, metrics_enabled=False)

        assert explainer.build_prompt("Pie Chart") == "Explain the Pie Chart at 100% detail."

    def test_explain_returns_model_text(self, explainer, mock_bedrock_client, crop_bytes, text_response):
        mock_bedrock_client.invoke_model.return_value = text_response("## Pie Chart\n\nShows market share.")

        result = explainer.explain_with_result(crop_bytes, "Pie Chart")

        assert result.status == ResultStatus.OK
        assert result.text == "## Pie Chart\n\nShows market share."
        assert "bedrock/test-model" in result.metering

        kwargs = mock_bedrock_client.invoke_model.call_args.kwargs
        assert kwargs["model_id"] == DEFAULT_CONFIG["explanation"]["model"]
        assert "Pie Chart" in kwargs["content"][0]["text"]
        assert kwargs["content"][1]["image"]["source"]["bytes"] == crop_bytes
        assert "tool_config" not in kwargs

    def test_empty_answer_gives_fallback(self, explainer, mock_bedrock_client, crop_bytes, text_response):
        mock_bedrock_client.invoke_model.return_value = text_response(" \n ")

        result = explainer.explain_with_result(crop_bytes, "Map")

        assert result.status == ResultStatus.FAILED
        assert result.text == EMPTY_EXPLANATION_FALLBACK
        assert explainer.explain(crop_bytes, "Map") == "No explanation could be generated."

    def test_remote_error_gives_fallback(self, explainer, mock_bedrock_client, crop_bytes):
        mock_bedrock_client.invoke_model.side_effect = RuntimeError("read timeout")

        result = explainer.explain_with_result(crop_bytes, "Map")

        assert result.status == ResultStatus.FAILED
        assert result.text == ERROR_EXPLANATION_FALLBACK
        assert result.error == "read timeout"
        assert explainer.explain(crop_bytes, "Map") == "Error generating explanation."

    def test_empty_crop_gives_error_fallback(self, explainer, mock_bedrock_client):
        assert explainer.explain(b"", "Flat Box") == ERROR_EXPLANATION_FALLBACK
        mock_bedrock_client.invoke_model.assert_not_called()

    def test_failure_metric_is_published(self, mock_bedrock_client, crop_bytes, text_response):
        mock_bedrock_client.invoke_model.return_value = text_response("")
        explainer = ElementExplainer(bedrock_client=mock_bedrock_client, metrics_enabled=True)

        with patch("visual_extract.explanation.service.metrics.put_metric") as mock_put_metric:
            explainer.explain(crop_bytes, "Map")

        mock_put_metric.assert_called_once_with("ExplanationFailures", 1, component="explanation")
