"""
Configuration module for Pulumi infrastructure.

Provides type-safe configuration types, cross-field validation and
constants. Stack config loading lives in dify_iac.configs.environment.
"""

from dify_iac.configs.base import Advisory, EnvironmentProps
from dify_iac.configs.validation import ConfigurationConflictError, validate_props
from dify_iac.configs.constants import (
    VPC_CIDR,
    SUBNET_CIDRS,
    DEFAULT_TAGS,
    PORTS,
)

__all__ = [
    "Advisory",
    "EnvironmentProps",
    "ConfigurationConflictError",
    "validate_props",
    "VPC_CIDR",
    "SUBNET_CIDRS",
    "DEFAULT_TAGS",
    "PORTS",
]
