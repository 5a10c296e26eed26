# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Session module for the visual_extract package.

Sequences rasterization, detection and extraction for one scan and
serves on-demand explanations of the extracted items.
"""

from visual_extract.session.service import ScanSession

__all__ = ["ScanSession"]
