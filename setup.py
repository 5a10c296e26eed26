#!/usr/bin/env python

# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

from setuptools import find_packages, setup

# Core dependencies required for all installations
install_requires = [
    "boto3>=1.38.36",  # Bedrock runtime, CloudWatch metrics, DynamoDB configuration
    "Pillow>=11.2.1",  # Image decoding, cropping and JPEG encoding
    "PyMuPDF>=1.25.5",  # PDF page rendering
]

# Optional dependencies by component
extras_require = {
    # Testing dependencies
    "test": [
        "pytest>=7.4.0",
        "pytest-cov>=4.1.0",
        "pytest-xdist>=3.3.1",  # For parallel test execution
    ],
}

setup(
    name="visual_extract",
    version="0.1.0",
    description="Detect, crop and explain visual elements on document pages with Amazon Bedrock",
    packages=find_packages(
        exclude=[
            "tests",
            "tests.*",
            "build",
            "build.*",
        ]
    ),
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=install_requires,
    extras_require=extras_require,
)
