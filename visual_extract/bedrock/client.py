"""
Bedrock client module for the remote vision model calls.

This module provides a class-based interface for invoking Bedrock models
through the Converse API. Each invocation is a single attempt: errors are
logged, counted in metrics and re-raised for the caller to handle.
"""

import boto3
import os
import time
import logging
import copy
from typing import Dict, Any, List, Optional, Union
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

# Longest text fragment written to the logs for a single content block
MAX_LOGGED_TEXT = 500


class BedrockClient:
    """Client for interacting with Amazon Bedrock models."""

    def __init__(
        self,
        region: Optional[str] = None,
        metrics_enabled: bool = True
    ):
        """
        Initialize a Bedrock client.

        Args:
            region: AWS region (defaults to AWS_REGION env var or us-west-2)
            metrics_enabled: Whether to publish metrics
        """
        self.region = region or os.environ.get('AWS_REGION', 'us-west-2')
        self.metrics_enabled = metrics_enabled
        self._client = None

    @property
    def client(self):
        """Lazy-loaded Bedrock runtime client."""
        if self._client is None:
            self._client = boto3.client('bedrock-runtime', region_name=self.region)
        return self._client

    def __call__(self, model_id: str, system_prompt: Union[str, List[Dict[str, str]]],
                 content: List[Dict[str, Any]], **kwargs) -> Dict[str, Any]:
        """Make the instance callable as a drop-in for invoke_model."""
        return self.invoke_model(model_id=model_id, system_prompt=system_prompt, content=content, **kwargs)

    def invoke_model(
        self,
        model_id: str,
        system_prompt: Union[str, List[Dict[str, str]]],
        content: List[Dict[str, Any]],
        temperature: Union[float, str] = 0.0,
        top_k: Optional[Union[float, str]] = None,
        max_tokens: Optional[int] = None,
        tool_config: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Invoke a Bedrock model once.

        Args:
            model_id: The Bedrock model ID (e.g., 'us.amazon.nova-pro-v1:0')
            system_prompt: The system prompt as string or list of content objects
            content: The content for the user message (can include text and images)
            temperature: The temperature parameter for model inference (float or string)
            top_k: Optional top_k parameter for Anthropic models (float or string)
            max_tokens: Optional cap on generated tokens
            tool_config: Optional Converse toolConfig used to constrain the response shape

        Returns:
            Dict with the raw Bedrock response under "response" and usage under "metering"

        Raises:
            ClientError: If Bedrock rejects the request
            Exception: Any other error raised while invoking the model
        """
        self._put_metric('BedrockRequestsTotal', 1)

        if isinstance(system_prompt, str):
            formatted_system_prompt = [{"text": system_prompt}] if system_prompt else []
        else:
            formatted_system_prompt = system_prompt

        # Convert temperature to float if it's a string
        if isinstance(temperature, str):
            try:
                temperature = float(temperature)
            except ValueError:
                logger.warning(f"Failed to convert temperature value '{temperature}' to float. Using default 0.0")
                temperature = 0.0

        inference_config: Dict[str, Any] = {"temperature": temperature}
        if max_tokens:
            inference_config["maxTokens"] = int(max_tokens)

        converse_params: Dict[str, Any] = {
            "modelId": model_id,
            "messages": [{"role": "user", "content": content}],
            "inferenceConfig": inference_config,
        }
        if formatted_system_prompt:
            converse_params["system"] = formatted_system_prompt

        if "anthropic" in model_id.lower() and top_k is not None:
            try:
                converse_params["additionalModelRequestFields"] = {"top_k": float(top_k)}
            except (TypeError, ValueError):
                logger.warning(f"Failed to convert top_k value '{top_k}' to float. Not using top_k.")

        if tool_config:
            converse_params["toolConfig"] = tool_config

        guardrail_config = self.get_guardrail_config()
        if guardrail_config:
            converse_params["guardrailConfig"] = guardrail_config

        logger.info(f"Bedrock request to {model_id}")
        logger.debug(f"  - inferenceConfig: {inference_config}")
        logger.debug(f"  - messages: {self._sanitize_messages_for_logging(converse_params['messages'])}")
        if tool_config:
            tool_names = [tool.get("toolSpec", {}).get("name") for tool in tool_config.get("tools", [])]
            logger.debug(f"  - tools: {tool_names}")

        start_time = time.time()
        try:
            response = self.client.converse(**converse_params)
        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            logger.error(f"Bedrock error: {error_code} - {error_message}")
            self._put_metric('BedrockRequestsFailed', 1)
            raise
        except Exception as e:
            logger.error(f"Unexpected error invoking Bedrock: {str(e)}", exc_info=True)
            self._put_metric('BedrockRequestsFailed', 1)
            self._put_metric('BedrockUnexpectedErrors', 1)
            raise

        duration = time.time() - start_time
        logger.debug(f"Bedrock request completed in {duration:.2f}s")
        logger.debug(f"Response: {self._sanitize_response_for_logging(response)}")

        self._put_metric('BedrockRequestsSucceeded', 1)
        self._put_metric('BedrockRequestLatency', duration * 1000, 'Milliseconds')

        usage = response.get('usage', {})
        if usage:
            self._put_metric('InputTokens', usage.get('inputTokens', 0))
            self._put_metric('OutputTokens', usage.get('outputTokens', 0))

        return {
            "response": response,
            "metering": {
                f"bedrock/{model_id}": {
                    **usage
                }
            }
        }

    def get_guardrail_config(self) -> Optional[Dict[str, str]]:
        """
        Get guardrail configuration from environment if available.

        Returns:
            Optional guardrail configuration dict with id and version
        """
        guardrail_env = os.environ.get("GUARDRAIL_ID_AND_VERSION", "")
        if not guardrail_env:
            return None

        try:
            guardrail_id, guardrail_version = guardrail_env.split(":")
            if guardrail_id and guardrail_version:
                logger.debug(f"Using Bedrock Guardrail ID: {guardrail_id}, Version: {guardrail_version}")
                return {
                    "guardrailIdentifier": guardrail_id,
                    "guardrailVersion": guardrail_version,
                    "trace": "enabled"
                }
        except ValueError:
            logger.warning(f"Invalid GUARDRAIL_ID_AND_VERSION format: {guardrail_env}. Expected format: 'id:version'")

        return None

    @staticmethod
    def _content_blocks(response: Dict[str, Any]) -> List[Dict[str, Any]]:
        response_obj = response.get("response", response)
        try:
            content = response_obj['output']['message']['content']
        except (KeyError, TypeError):
            return []
        return content if isinstance(content, list) else []

    def extract_text_from_response(self, response: Dict[str, Any]) -> str:
        """
        Extract text from a Bedrock response.

        Args:
            response: Bedrock response object, with or without metering wrapper

        Returns:
            Concatenated text content, or "" if the response has none
        """
        parts = [
            block["text"] for block in self._content_blocks(response)
            if isinstance(block, dict) and isinstance(block.get("text"), str)
        ]
        return "".join(parts)

    def extract_tool_input(self, response: Dict[str, Any], tool_name: str) -> Optional[Any]:
        """
        Extract the input the model passed to a named tool.

        Args:
            response: Bedrock response object, with or without metering wrapper
            tool_name: Name of the tool in the request's toolConfig

        Returns:
            The toolUse input, or None if the model did not call the tool
        """
        for block in self._content_blocks(response):
            tool_use = block.get("toolUse") if isinstance(block, dict) else None
            if tool_use and tool_use.get("name") == tool_name:
                return tool_use.get("input")
        return None

    def format_prompt(
        self,
        prompt_template: str,
        substitutions: Dict[str, str],
        required_placeholders: List[str] = None
    ) -> str:
        """
        Prepare prompt from template by replacing placeholders with values.

        Args:
            prompt_template: The prompt template with placeholders in {PLACEHOLDER} format
            substitutions: Dictionary of placeholder values
            required_placeholders: List of placeholder names that must be present in the template

        Returns:
            String with placeholders replaced by values

        Raises:
            ValueError: If a required placeholder is missing from the template
        """
        if required_placeholders:
            missing_placeholders = [p for p in required_placeholders if f"{{{p}}}" not in prompt_template]
            if missing_placeholders:
                raise ValueError(f"Prompt template must contain the following placeholders: {', '.join([f'{{{p}}}' for p in missing_placeholders])}")

        # Escape literal percent signs, then convert {PLACEHOLDER} to %(PLACEHOLDER)s
        prompt_template = prompt_template.replace("%", "%%")
        for key in substitutions:
            prompt_template = prompt_template.replace(f"{{{key}}}", f"%({key})s")

        return prompt_template % substitutions

    def _put_metric(self, metric_name: str, value: Union[int, float], unit: str = 'Count'):
        """
        Publish a metric if metrics are enabled.

        Args:
            metric_name: Name of the metric
            value: Metric value
            unit: Metric unit (default: Count)
        """
        if self.metrics_enabled:
            try:
                from ..metrics import put_metric
                put_metric(metric_name, value, unit, component='bedrock')
            except Exception as e:
                logger.warning(f"Failed to publish metric {metric_name}: {str(e)}")

    @staticmethod
    def _redact_blocks(blocks: Any) -> None:
        """Replace image payloads and shorten long text in content blocks, in place."""
        if not isinstance(blocks, list):
            return
        for block in blocks:
            if not isinstance(block, dict):
                continue
            if 'image' in block:
                block['image'] = '[image_data]'
            text = block.get('text')
            if isinstance(text, str) and len(text) > MAX_LOGGED_TEXT:
                block['text'] = text[:MAX_LOGGED_TEXT] + '... [truncated]'

    def _sanitize_messages_for_logging(self, messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Return a copy of the request messages that is safe to log."""
        sanitized = copy.deepcopy(messages)
        for message in sanitized:
            self._redact_blocks(message.get('content'))
        return sanitized

    def _sanitize_response_for_logging(self, response: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of a Converse response that is safe to log."""
        sanitized = copy.deepcopy(response)
        message = sanitized.get('output', {}).get('message', {})
        self._redact_blocks(message.get('content'))
        return sanitized


# Create a default client instance
default_client = BedrockClient()

# The default client doubles as a plain invoke function
invoke_model = default_client
