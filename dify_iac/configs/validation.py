"""
Cross-field validation of operator configuration.

Runs over the raw EnvironmentProps before any default is applied or any
resource is declared. Every rule is checked; all violations are reported
together so an operator can fix a stack config in one pass.

Raises:
    ConfigurationConflictError: One subclass per rule, or the base class
        carrying every violation when several rules fail.
"""

import logging
import re

from dify_iac.configs.base import Advisory, EnvironmentProps
from dify_iac.configs.constants import AURORA_BACKUP_RETENTION_RANGE, SECRET_SUFFIX_PATTERN

logger = logging.getLogger(__name__)

_SECRET_SUFFIX = re.compile(SECRET_SUFFIX_PATTERN)

ALB_WITHOUT_ENCRYPTION = "alb-without-encryption"


class ConfigurationConflictError(ValueError):
    """Configuration combination that cannot be provisioned."""

    def __init__(self, message: str, errors: list["ConfigurationConflictError"] | None = None) -> None:
        super().__init__(message)
        self.errors = errors if errors is not None else [self]


class VpcImportConflictError(ConfigurationConflictError):
    pass


class CloudFrontInternalAlbConflictError(ConfigurationConflictError):
    pass


class SubDomainWithoutDomainError(ConfigurationConflictError):
    pass


class EmailWithoutDomainError(ConfigurationConflictError):
    pass


class SecretNameSuffixError(ConfigurationConflictError):
    """Secret names that clash with the suffix Secrets Manager appends to ARNs."""

    def __init__(self, secret_names: list[str]) -> None:
        super().__init__(
            "secret_name cannot end with a hyphen and 6 characters: " + ", ".join(secret_names)
        )
        self.secret_names = secret_names


class IsolatedVpcPublicAlbError(ConfigurationConflictError):
    pass


class InvalidSettingError(ConfigurationConflictError):
    pass


def _check_vpc_import(props: EnvironmentProps) -> ConfigurationConflictError | None:
    if props.vpc_id and (props.use_nat_instance or props.vpc_isolated):
        return VpcImportConflictError(
            f"When you import an existing VPC ({props.vpc_id}), "
            "you cannot set use_nat_instance or vpc_isolated!"
        )
    return None


def _check_cloud_front_internal_alb(props: EnvironmentProps) -> ConfigurationConflictError | None:
    use_cloud_front = props.use_cloud_front is not False
    if use_cloud_front and props.internal_alb:
        return CloudFrontInternalAlbConflictError(
            "You cannot set internal_alb when use_cloud_front is true!"
        )
    return None


def _check_isolated_vpc(props: EnvironmentProps) -> ConfigurationConflictError | None:
    # An isolated VPC has no public subnets to place an internet-facing ALB in
    if props.vpc_isolated and not props.vpc_id:
        if props.use_cloud_front is not False or not props.internal_alb:
            return IsolatedVpcPublicAlbError(
                "When you set vpc_isolated, you must set use_cloud_front: false and internal_alb: true!"
            )
    return None


def _check_sub_domain(props: EnvironmentProps) -> ConfigurationConflictError | None:
    if props.sub_domain is not None and not props.domain_name:
        return SubDomainWithoutDomainError("You cannot set sub_domain without domain_name!")
    return None


def _check_email(props: EnvironmentProps) -> ConfigurationConflictError | None:
    if props.setup_email and not props.domain_name:
        return EmailWithoutDomainError("You cannot enable setup_email without domain_name!")
    return None


def _check_secret_names(props: EnvironmentProps) -> ConfigurationConflictError | None:
    # Secrets are looked up by name; a trailing -XXXXXX is read as the ARN suffix
    offending = [
        reference.secret_name
        for reference in props.secret_references
        if _SECRET_SUFFIX.search(reference.secret_name)
    ]
    if offending:
        return SecretNameSuffixError(offending)
    return None


def _check_backup_retention(props: EnvironmentProps) -> ConfigurationConflictError | None:
    days = props.aurora_backup_retention_days
    low, high = AURORA_BACKUP_RETENTION_RANGE
    if days is not None and not low <= days <= high:
        return InvalidSettingError(
            f"aurora_backup_retention_days must be between {low} and {high}, got {days}"
        )
    return None


RULES = (
    _check_vpc_import,
    _check_cloud_front_internal_alb,
    _check_isolated_vpc,
    _check_sub_domain,
    _check_email,
    _check_secret_names,
    _check_backup_retention,
)


def collect_advisories(props: EnvironmentProps) -> list[Advisory]:
    """
    Collect non-fatal warnings for a configuration.

    Args:
        props: Raw operator configuration

    Returns:
        Advisories to surface to the operator
    """
    advisories = []
    if props.use_cloud_front is False and not props.domain_name and not props.internal_alb:
        advisories.append(Advisory(
            code=ALB_WITHOUT_ENCRYPTION,
            message=(
                "You are exposing the ALB to the Internet without TLS encryption. "
                "It is recommended to set use_cloud_front: true or domain_name."
            ),
        ))
    return advisories


def validate_props(props: EnvironmentProps) -> list[Advisory]:
    """
    Validate a configuration before any resource is derived from it.

    Args:
        props: Raw operator configuration

    Returns:
        Advisories (warnings that do not block the deployment)

    Raises:
        ConfigurationConflictError: If any rule is violated
    """
    errors = [error for error in (rule(props) for rule in RULES) if error is not None]
    if len(errors) == 1:
        raise errors[0]
    if errors:
        raise ConfigurationConflictError(
            "Invalid configuration:\n" + "\n".join(f"- {error}" for error in errors),
            errors=errors,
        )

    advisories = collect_advisories(props)
    for advisory in advisories:
        logger.warning("%s: %s", advisory.code, advisory.message)
    return advisories
