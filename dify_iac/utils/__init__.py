"""
Utility functions for Pulumi infrastructure.

Provides naming conventions and tag factories.
"""

from dify_iac.utils.naming import (
    ResourceNamer,
    build_bucket_name,
    build_resource_name,
    sanitize,
)
from dify_iac.utils.tags import create_tags

__all__ = [
    "ResourceNamer",
    "build_bucket_name",
    "build_resource_name",
    "sanitize",
    "create_tags",
]
