import boto3
import os
from typing import Dict, Any, Optional
from botocore.exceptions import ClientError
import logging
from copy import deepcopy

logger = logging.getLogger(__name__)

DETECTION_SYSTEM_PROMPT = (
    "You are a document layout analyst. You locate visual elements on scanned "
    "or rendered document pages and report precise bounding boxes."
)

DETECTION_TASK_PROMPT = (
    "Identify all distinct diagrams, photos, charts, illustrations, and maps in this image. "
    "For each, provide a short label and precise bounding box coordinates. "
    "Report each bounding box as [ymin, xmin, ymax, xmax] scaled from 0 to 1000 relative "
    "to the image height and width, and add a one-sentence description of the element."
)

EXPLANATION_SYSTEM_PROMPT = (
    "You are an expert analyst who explains figures, charts, maps and photos "
    "extracted from documents."
)

EXPLANATION_TASK_PROMPT = (
    'This is an extracted visual element labeled "{LABEL}". Please provide a detailed '
    "explanation of what is shown, including any data, text labels within the image, "
    "and its likely purpose or significance. Use markdown for formatting."
)

DEFAULT_CONFIG: Dict[str, Any] = {
    "rasterization": {
        "scale": 2.0,
        "jpeg_quality": 0.95,
    },
    "extraction": {
        "jpeg_quality": 0.9,
    },
    "detection": {
        "model": "us.amazon.nova-pro-v1:0",
        "temperature": 0.0,
        "max_tokens": 4096,
        "system_prompt": DETECTION_SYSTEM_PROMPT,
        "task_prompt": DETECTION_TASK_PROMPT,
    },
    "explanation": {
        "model": "us.anthropic.claude-3-7-sonnet-20250219-v1:0",
        "temperature": 0.0,
        "max_tokens": 4096,
        "system_prompt": EXPLANATION_SYSTEM_PROMPT,
        "task_prompt": EXPLANATION_TASK_PROMPT,
    },
}


def deep_merge(default: Dict[str, Any], custom: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge two dictionaries, with custom values taking precedence

    Args:
        default: The default configuration dictionary
        custom: The custom configuration dictionary

    Returns:
        Merged configuration dictionary
    """
    result = deepcopy(default)

    for key, value in custom.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)

    return result


class ConfigurationReader:
    def __init__(self, table_name=None):
        """
        Initialize the configuration reader using the table name from environment variable or parameter

        Args:
            table_name: Optional override for configuration table name
        """
        table_name = table_name or os.environ.get('CONFIGURATION_TABLE_NAME')
        if not table_name:
            raise ValueError("Configuration table name not provided. Either set CONFIGURATION_TABLE_NAME environment variable or provide table_name parameter.")

        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized ConfigurationReader with table: {table_name}")

    def get_configuration(self, config_type: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve a configuration item from DynamoDB

        Args:
            config_type: The configuration type to retrieve ('Default' or 'Custom')

        Returns:
            Configuration dictionary if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={'Configuration': config_type})
        except ClientError as e:
            logger.error(f"Error retrieving configuration {config_type}: {str(e)}")
            raise

        item = response.get('Item')
        if item is not None:
            # The partition key is not part of the configuration itself
            item = {k: v for k, v in item.items() if k != 'Configuration'}
        return item

    def get_merged_configuration(self) -> Dict[str, Any]:
        """
        Merge the stored Default and Custom items; either may be absent.

        Returns:
            Merged configuration dictionary
        """
        stored_default = self.get_configuration('Default') or {}
        stored_custom = self.get_configuration('Custom') or {}

        if not stored_custom:
            logger.info("No Custom configuration found, using Default only")

        return deep_merge(stored_default, stored_custom)


def get_config(custom: Optional[Dict[str, Any]] = None, table_name: Optional[str] = None) -> Dict[str, Any]:
    """
    Build the effective configuration.

    DEFAULT_CONFIG is overlaid with the DynamoDB configuration when a table
    is configured (parameter or CONFIGURATION_TABLE_NAME), then with custom.

    Args:
        custom: Optional overrides applied last
        table_name: Optional override for configuration table name

    Returns:
        Merged configuration dictionary
    """
    config = deepcopy(DEFAULT_CONFIG)

    if table_name or os.environ.get('CONFIGURATION_TABLE_NAME'):
        reader = ConfigurationReader(table_name)
        config = deep_merge(config, reader.get_merged_configuration())
        logger.info("Merged stored configuration over defaults")

    if custom:
        config = deep_merge(config, custom)

    return config
