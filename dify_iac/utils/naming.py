"""
Resource naming conventions for consistent AWS resource names.

Follows pattern: dify-{environment}-{resource}

Every AWS resource type has its own naming grammar and length ceiling
(e.g. ElastiCache replication group ids stop at 40 characters, ALB names at 32,
S3 buckets must be 3-63 characters). Operator-supplied labels are sanitized to
[a-z0-9-], joined, truncated to the ceiling and re-stripped so a truncation never
leaves a dangling separator.

Account and region are passed in explicitly. When either is unknown at plan
time it is simply omitted from bucket names.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass

from dify_iac.configs.constants import (
    BUCKET_NAME_FILLER,
    BUCKET_NAME_MAX_LENGTH,
    BUCKET_NAME_MIN_LENGTH,
    FALLBACK_ENVIRONMENT_LABEL,
    NAME_MAX_LENGTHS,
    RESOURCE_NAME_PREFIX,
)

_DISALLOWED_CHARS = re.compile(r"[^a-z0-9-]")
_DASH_RUNS = re.compile(r"-+")
_SLASH_RUNS = re.compile(r"/{2,}")


def sanitize(raw: str | None) -> str:
    """
    Reduce a free-form label to lowercase [a-z0-9-] with single separators.

    Args:
        raw: Any string (None is treated as empty)

    Returns:
        Sanitized token, possibly empty
    """
    value = _DISALLOWED_CHARS.sub("-", (raw or "").lower())
    value = _DASH_RUNS.sub("-", value)
    return value.strip("-")


def _truncate(value: str, max_length: int) -> str:
    return value[:max_length].rstrip("-")


def build_resource_name(
    parts: Sequence[str | None],
    max_length: int,
    fallback: str = RESOURCE_NAME_PREFIX,
) -> str:
    """
    Join name parts into a bounded, non-empty resource name.

    Args:
        parts: Ordered name parts; the first one is the resource prefix
        max_length: Resource-type length ceiling
        fallback: Used when every part sanitizes to nothing

    Returns:
        Name of at most max_length characters, never ending with '-'

    Raises:
        ValueError: If max_length is smaller than 1
    """
    if max_length < 1:
        raise ValueError(f"max_length must be at least 1, got {max_length}")

    tokens = [token for token in (sanitize(part) for part in parts) if token]
    combined = sanitize("-".join(tokens))
    name = _truncate(combined, max_length)
    if name:
        return name

    prefix = sanitize(parts[0]) if parts else ""
    return _truncate(prefix, max_length) or _truncate(sanitize(fallback), max_length) or (
        RESOURCE_NAME_PREFIX[:max_length]
    )


def build_bucket_name(base: str | None, suffix: str | None) -> str:
    """
    Generate an S3 bucket name (3-63 characters, lowercase, digits and hyphens).

    Args:
        base: Bucket prefix (already carrying environment/account/region)
        suffix: Bucket purpose (e.g., 'storage', 'access-logs')

    Returns:
        Valid bucket name, right-padded when shorter than the S3 minimum
    """
    tokens = [token for token in (sanitize(base), sanitize(suffix)) if token]
    candidate = _truncate(sanitize("-".join(tokens)), BUCKET_NAME_MAX_LENGTH)
    if len(candidate) < BUCKET_NAME_MIN_LENGTH:
        candidate = candidate.ljust(BUCKET_NAME_MIN_LENGTH, BUCKET_NAME_FILLER)
    return candidate


@dataclass(frozen=True)
class ResourceNamer:
    """
    Generates consistent resource names for AWS resources.

    Attributes:
        environment_name: Operator-supplied environment label (free-form)
        account: AWS account id, or None when not known at plan time
        region: AWS region, or None when not known at plan time
    """
    environment_name: str
    account: str | None = None
    region: str | None = None

    @property
    def environment(self) -> str:
        """Sanitized environment label, defaulting to 'env'."""
        return sanitize(self.environment_name) or FALLBACK_ENVIRONMENT_LABEL

    @property
    def prefix(self) -> str:
        """Resource name prefix shared by every resource (e.g. 'dify-dev')."""
        return sanitize(f"{RESOURCE_NAME_PREFIX}-{self.environment}") or RESOURCE_NAME_PREFIX

    def name(self, resource: str, max_length: int = NAME_MAX_LENGTHS["default"]) -> str:
        """
        Generate a resource name.

        Args:
            resource: Resource identifier (e.g., 'cluster', 'redis-subnets')
            max_length: Length ceiling of the target resource type

        Returns:
            Formatted resource name
        """
        return build_resource_name([self.prefix, resource], max_length, fallback=self.prefix)

    def cluster_name(self) -> str:
        return self.name("cluster", NAME_MAX_LENGTHS["ecs_cluster"])

    def task_family(self, service: str) -> str:
        return self.name(service, NAME_MAX_LENGTHS["ecs_task_family"])

    def service_name(self, service: str) -> str:
        return self.name(service, NAME_MAX_LENGTHS["ecs_service"])

    def subnet_group_name(self, role: str) -> str:
        return self.name(f"{role}-subnets", NAME_MAX_LENGTHS["subnet_group"])

    def replication_group_id(self) -> str:
        return self.name("redis", NAME_MAX_LENGTHS["replication_group"])

    def db_cluster_identifier(self) -> str:
        return self.name("postgres", NAME_MAX_LENGTHS["db_cluster"])

    def load_balancer_name(self) -> str:
        return self.name("alb", NAME_MAX_LENGTHS["load_balancer"])

    def target_group_name(self, role: str) -> str:
        return self.name(role, NAME_MAX_LENGTHS["target_group"])

    def secret_name(self, *path: str) -> str:
        """
        Generate a Secrets Manager secret name.

        Args:
            *path: Secret path segments (e.g., 'redis', 'auth')

        Returns:
            Secret name with the resource prefix, e.g. 'dify-dev/redis/auth'
        """
        segments = [self.prefix, *(sanitize(segment) for segment in path)]
        name = "/".join(segment for segment in segments if segment)
        return name[: NAME_MAX_LENGTHS["secret"]].rstrip("/-")

    def parameter_name(self, *path: str) -> str:
        """
        Generate an SSM parameter path, e.g. '/dify/dify-dev/redis/broker-url'.
        """
        segments = [RESOURCE_NAME_PREFIX, self.prefix, *(sanitize(segment) for segment in path)]
        name = _SLASH_RUNS.sub("/", "/" + "/".join(segments))
        return name[: NAME_MAX_LENGTHS["ssm_parameter"]].rstrip("/-")

    def log_group_name(self, service: str) -> str:
        return f"/aws/ecs/{self.name(service, NAME_MAX_LENGTHS['log_group'] - len('/aws/ecs/'))}"

    @property
    def bucket_prefix(self) -> str:
        """Bucket prefix with account and region segments when they are known."""
        segments = [self.prefix, sanitize(self.account), sanitize(self.region)]
        return sanitize("-".join(segment for segment in segments if segment))

    def bucket_name(self, suffix: str) -> str:
        """
        Generate an S3 bucket name (must be globally unique).

        Args:
            suffix: Bucket suffix (e.g., 'storage', 'access-logs')

        Returns:
            Globally unique bucket name
        """
        return build_bucket_name(self.bucket_prefix or self.prefix, suffix)

    def edge_suffix(self, sub_domain: str | None) -> str:
        """Suffix keeping us-east-1 edge resources of sibling deployments apart."""
        return build_resource_name(
            [self.environment, sub_domain], NAME_MAX_LENGTHS["default"], fallback=self.environment
        )
