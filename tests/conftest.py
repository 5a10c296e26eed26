# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Pytest configuration file for the visual_extract package tests.
"""

import io
import os
from typing import List, Tuple
from unittest.mock import MagicMock

import fitz  # PyMuPDF
import pytest
from PIL import Image

# Keep boto3 from looking for a region or credentials during tests
os.environ.setdefault("AWS_REGION", "us-west-2")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-west-2")


def make_image_bytes(width: int, height: int, color=(255, 255, 255), fmt: str = "JPEG") -> bytes:
    """Create an encoded solid-color image."""
    mode = "RGBA" if len(color) == 4 else "RGB"
    img = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def make_pdf_bytes(page_sizes: List[Tuple[float, float]]) -> bytes:
    """Create a PDF with blank pages of the given sizes in points."""
    doc = fitz.open()
    for width, height in page_sizes:
        doc.new_page(width=width, height=height)
    data = doc.tobytes()
    doc.close()
    return data


def converse_text_response(text: str, model_id: str = "test-model") -> dict:
    """Build a BedrockClient.invoke_model result carrying a text answer."""
    return {
        "response": {
            "output": {"message": {"role": "assistant", "content": [{"text": text}]}},
            "usage": {"inputTokens": 100, "outputTokens": 20, "totalTokens": 120},
        },
        "metering": {f"bedrock/{model_id}": {"inputTokens": 100, "outputTokens": 20, "totalTokens": 120}},
    }


def converse_tool_response(tool_name: str, tool_input, model_id: str = "test-model") -> dict:
    """Build a BedrockClient.invoke_model result carrying a tool call."""
    return {
        "response": {
            "output": {
                "message": {
                    "role": "assistant",
                    "content": [
                        {"toolUse": {"toolUseId": "tooluse-1", "name": tool_name, "input": tool_input}}
                    ],
                }
            },
            "usage": {"inputTokens": 1500, "outputTokens": 80, "totalTokens": 1580},
        },
        "metering": {f"bedrock/{model_id}": {"inputTokens": 1500, "outputTokens": 80, "totalTokens": 1580}},
    }


@pytest.fixture
def jpeg_page_bytes():
    """An 800x600 white JPEG page."""
    return make_image_bytes(800, 600)


@pytest.fixture
def mock_bedrock_client():
    """
    A BedrockClient stand-in whose response helpers behave like the real ones.
    """
    from visual_extract.bedrock import BedrockClient

    real_client = BedrockClient(metrics_enabled=False)
    client = MagicMock(spec=BedrockClient)
    client.extract_text_from_response.side_effect = real_client.extract_text_from_response
    client.extract_tool_input.side_effect = real_client.extract_tool_input
    client.format_prompt.side_effect = real_client.format_prompt
    return client


@pytest.fixture
def make_image():
    """Factory fixture for encoded solid-color images."""
    return make_image_bytes


@pytest.fixture
def make_pdf():
    """Factory fixture for blank PDFs."""
    return make_pdf_bytes


@pytest.fixture
def text_response():
    """Factory fixture for text answers from invoke_model."""
    return converse_text_response


@pytest.fixture
def tool_response():
    """Factory fixture for tool-call answers from invoke_model."""
    return converse_tool_response
