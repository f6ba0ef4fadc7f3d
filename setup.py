# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Setup configuration for Conductor pipeline orchestration engine
"""

from setuptools import setup, find_packages

setup(
    name="conductor-pipelines",
    version="1.0.0",
    description="Sequential tool pipeline orchestration with inter-step LLM reasoning",
    packages=find_packages(include=["conductor", "conductor.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0.0",
        "pyyaml>=6.0",
        "httpx>=0.25.0",
        "anthropic>=0.30.0",
        "openai>=1.0.0",
        "fastapi>=0.100.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ]
    },
)
