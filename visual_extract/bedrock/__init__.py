"""Bedrock integration module for the visual_extract package."""

from .client import BedrockClient, invoke_model, default_client

# Export the public API
__all__ = [
    "BedrockClient",
    "invoke_model",
    "default_client",
    "extract_text_from_response",
    "extract_tool_input",
    "format_prompt",
]

# Re-export key helpers from the default client
extract_text_from_response = default_client.extract_text_from_response
extract_tool_input = default_client.extract_tool_input
format_prompt = default_client.format_prompt
