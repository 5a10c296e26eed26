import boto3
import os
import logging
from typing import List, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = 'VISUALEXTRACT'

_cloudwatch_client = None


def get_cloudwatch_client():
    """Return the shared CloudWatch client, creating it on first use."""
    global _cloudwatch_client
    if _cloudwatch_client is None:
        _cloudwatch_client = boto3.client('cloudwatch')
    return _cloudwatch_client


def build_dimensions(component: Optional[str] = None,
                     dimensions: Optional[List[Dict[str, str]]] = None) -> List[Dict[str, str]]:
    """
    Combine the pipeline component with any extra CloudWatch dimensions.

    Args:
        component: Pipeline stage publishing the metric (e.g. 'detection')
        dimensions: Additional Name/Value dimension pairs

    Returns:
        Dimension list with the Component entry first
    """
    result = []
    if component:
        result.append({'Name': 'Component', 'Value': component})
    for dimension in dimensions or []:
        if dimension.get('Name') != 'Component':
            result.append(dimension)
    return result


def put_metric(name: str, value: float, unit: str = 'Count',
               component: Optional[str] = None,
               dimensions: Optional[List[Dict[str, str]]] = None,
               namespace: Optional[str] = None) -> None:
    """
    Publish one data point to CloudWatch. Errors are logged, never raised.

    Args:
        name: Metric name (e.g. 'DetectionFailures')
        value: Metric value
        unit: CloudWatch unit
        component: Pipeline stage, recorded as the Component dimension
        dimensions: Extra dimensions
        namespace: Metric namespace; METRIC_NAMESPACE or VISUALEXTRACT when omitted
    """
    namespace = namespace or os.environ.get('METRIC_NAMESPACE', DEFAULT_NAMESPACE)
    metric_dimensions = build_dimensions(component, dimensions)

    logger.debug(f"Publishing metric {namespace}/{name}={value} {unit} {metric_dimensions}")
    try:
        get_cloudwatch_client().put_metric_data(
            Namespace=namespace,
            MetricData=[{
                'MetricName': name,
                'Value': value,
                'Unit': unit,
                'Dimensions': metric_dimensions
            }]
        )
    except Exception as e:
        logger.error(f"Error publishing metric {name}: {e}")
