# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

# Use true lazy loading for all submodules
__version__ = "0.1.0"

# Cache for lazy-loaded submodules
_submodules = {}


def __getattr__(name):
    """Lazy load submodules only when accessed"""
    if name in [
        "bedrock",
        "metrics",
        "image",
        "utils",
        "config",
        "models",
        "rasterizer",
        "detection",
        "extraction",
        "explanation",
        "session",
    ]:
        if name not in _submodules:
            _submodules[name] = __import__(f"visual_extract.{name}", fromlist=[name])
        return _submodules[name]

    # Handle specific imports from models and config
    if name in ["SourceDocument", "PageRaster", "Detection", "ExtractedItem", "SessionState"]:
        if "models" not in _submodules:
            _submodules["models"] = __import__("visual_extract.models", fromlist=["models"])
        return getattr(_submodules["models"], name)

    if name == "get_config":
        if "config" not in _submodules:
            _submodules["config"] = __import__("visual_extract.config", fromlist=["config"])
        return _submodules["config"].get_config

    if name == "ScanSession":
        if "session" not in _submodules:
            _submodules["session"] = __import__("visual_extract.session", fromlist=["session"])
        return _submodules["session"].ScanSession

    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


# Define what should be available when using "from visual_extract import *"
__all__ = [
    "bedrock",
    "metrics",
    "image",
    "utils",
    "config",
    "models",
    "rasterizer",
    "detection",
    "extraction",
    "explanation",
    "session",
    "get_config",
    "SourceDocument",
    "PageRaster",
    "Detection",
    "ExtractedItem",
    "SessionState",
    "ScanSession",
]
