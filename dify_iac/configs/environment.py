"""
Environment configuration loader.

Loads operator settings from Pulumi stack config files into EnvironmentProps.
Structured values are validated with the pydantic schemas.
"""

import logging
from collections.abc import Mapping
from typing import Any

import pulumi
from pydantic import TypeAdapter, ValidationError

from dify_iac.configs.base import EnvironmentProps
from dify_iac.configs.schemas import AdditionalEnvironmentVariable
from dify_iac.configs.validation import InvalidSettingError

logger = logging.getLogger(__name__)

_VARIABLES_ADAPTER = TypeAdapter(tuple[AdditionalEnvironmentVariable, ...])
_CIDRS_ADAPTER = TypeAdapter(tuple[str, ...])

_STRING_KEYS = (
    "environment_name",
    "aws_region",
    "aws_account",
    "dify_image_tag",
    "dify_sandbox_image_tag",
    "dify_plugin_daemon_image_tag",
    "domain_name",
    "sub_domain",
    "vpc_id",
    "custom_ecr_repository_name",
)

_BOOL_KEYS = (
    "allow_any_syscalls",
    "use_cloud_front",
    "internal_alb",
    "use_fargate_spot",
    "vpc_isolated",
    "use_nat_instance",
    "is_redis_multi_az",
    "enable_aurora_scales_to_zero",
    "setup_email",
)


def parse_additional_environment_variables(
    raw: Any,
) -> tuple[AdditionalEnvironmentVariable, ...]:
    """
    Parse the additional_environment_variables stack setting.

    Args:
        raw: List of mappings as returned by ``Config.get_object`` (or None)

    Returns:
        Parsed variables

    Raises:
        InvalidSettingError: If an entry does not match the schema
    """
    if raw is None:
        return ()
    try:
        return _VARIABLES_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        raise InvalidSettingError(f"Invalid additional_environment_variables: {exc}") from exc


def _parse_cidrs(key: str, raw: Any) -> tuple[str, ...] | None:
    if raw is None:
        return None
    try:
        return _CIDRS_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        raise InvalidSettingError(f"Invalid {key}: {exc}") from exc


def props_from_mapping(values: Mapping[str, Any]) -> EnvironmentProps:
    """
    Build EnvironmentProps from a plain mapping of stack settings.

    Args:
        values: Setting name to value (missing keys are left unset)

    Returns:
        EnvironmentProps: Raw operator configuration
    """
    retention = values.get("aurora_backup_retention_days")
    return EnvironmentProps(
        **{key: values.get(key) for key in _STRING_KEYS},
        **{key: values.get(key) for key in _BOOL_KEYS},
        aurora_backup_retention_days=int(retention) if retention is not None else None,
        allowed_ipv4_cidrs=_parse_cidrs("allowed_ipv4_cidrs", values.get("allowed_ipv4_cidrs")),
        allowed_ipv6_cidrs=_parse_cidrs("allowed_ipv6_cidrs", values.get("allowed_ipv6_cidrs")),
        additional_environment_variables=parse_additional_environment_variables(
            values.get("additional_environment_variables")
        ),
    )


def resolve_region(configured: str | None, provider_region: str) -> str:
    """
    Pick the region used in resource names.

    Resources are always created in the provider region (aws:region), so a
    different aws_region setting is ignored with a warning.
    """
    if configured and configured != provider_region:
        logger.warning(
            "aws_region %s differs from aws:region %s; using %s",
            configured, provider_region, provider_region,
        )
    return provider_region


def get_config() -> EnvironmentProps:
    """
    Load environment configuration from Pulumi stack config.

    Returns:
        EnvironmentProps: Raw operator configuration

    Raises:
        InvalidSettingError: If a structured setting is malformed
    """
    config = pulumi.Config()

    values: dict[str, Any] = {key: config.get(key) for key in _STRING_KEYS}
    values.update({key: config.get_bool(key) for key in _BOOL_KEYS})
    values["aurora_backup_retention_days"] = config.get_int("aurora_backup_retention_days")
    for key in ("allowed_ipv4_cidrs", "allowed_ipv6_cidrs", "additional_environment_variables"):
        values[key] = config.get_object(key)

    return props_from_mapping(values)
