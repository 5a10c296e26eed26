# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import json
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_CLOSERS = {"{": "}", "[": "]"}


def merge_metering_data(existing_metering: Dict[str, Any],
                       new_metering: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge metering data from multiple model calls

    Args:
        existing_metering: Existing metering data to merge into
        new_metering: New metering data to add

    Returns:
        Merged metering data
    """
    merged = {key: dict(value) if isinstance(value, dict) else value
              for key, value in existing_metering.items()}

    for service_api, metrics in new_metering.items():
        if isinstance(metrics, dict):
            bucket = merged.setdefault(service_api, {})
            for unit, value in metrics.items():
                if isinstance(value, (int, float)):
                    bucket[unit] = bucket.get(unit, 0) + value
        else:
            logger.warning(f"Unexpected metering data format for {service_api}: {metrics}")

    return merged


def _match_bracket(text: str, start_idx: int) -> Optional[str]:
    """Return the balanced JSON value starting at start_idx, ignoring brackets inside strings."""
    opener = text[start_idx]
    closer = _CLOSERS[opener]
    depth = 0
    in_string = False
    escape_next = False

    for i in range(start_idx, len(text)):
        char = text[i]

        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue

        if not in_string:
            if char == opener:
                depth += 1
            elif char == closer:
                depth -= 1
                if depth == 0:
                    return text[start_idx : i + 1]
    return None


def extract_json_from_text(text: str) -> str:
    """
    Extract a JSON string from LLM response text.

    Handles the formats models commonly answer with:
    - JSON wrapped in ```json code blocks
    - JSON wrapped in ``` code blocks
    - A raw JSON array or object surrounded by prose

    Args:
        text: The text response from the model

    Returns:
        Extracted JSON string, or original text if no JSON found
    """
    if not text:
        logger.warning("Empty text provided to extract_json_from_text")
        return text

    # Strategy 1: fenced code block, with or without a json tag
    fence = "```json" if "```json" in text else "```" if "```" in text else None
    if fence:
        start_idx = text.find(fence) + len(fence)
        end_idx = text.find("```", start_idx)
        if end_idx > start_idx:
            json_str = text[start_idx:end_idx].strip()
            try:
                json.loads(json_str)
                return json_str
            except json.JSONDecodeError:
                logger.debug("Found code block but content is not valid JSON, trying other strategies")

    # Strategy 2: first balanced array or object in the text
    candidates = [idx for idx in (text.find("["), text.find("{")) if idx != -1]
    for start_idx in sorted(candidates):
        json_str = _match_bracket(text, start_idx)
        if json_str is None:
            continue
        try:
            json.loads(json_str)
            return json_str
        except json.JSONDecodeError:
            # Literal newlines inside string values are a common model quirk
            normalized_json = " ".join(line.strip() for line in json_str.splitlines())
            try:
                json.loads(normalized_json)
                return normalized_json
            except json.JSONDecodeError:
                logger.debug("Found JSON-like content but parsing failed")

    logger.warning("Could not extract valid JSON, returning original text")
    return text
