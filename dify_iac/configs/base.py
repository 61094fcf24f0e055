"""
Base configuration dataclasses for environment settings.

EnvironmentProps is the raw operator input loaded from Pulumi stack config:
every optional setting stays None until normalization applies defaults, so the
validator can tell an explicitly set value from an omitted one.

The variant dataclasses describe the optional subsystems. Exactly one variant
per subsystem is selected during normalization.
"""

from dataclasses import dataclass

from dify_iac.configs.schemas import AdditionalEnvironmentVariable, SecretReference


@dataclass(frozen=True)
class EnvironmentProps:
    """
    Operator-supplied configuration for a Dify deployment.

    Attributes:
        environment_name: Free-form environment label (dev, staging-2, ...)
        aws_region: Expected region; names always use the provider region (aws:region)
        aws_account: Target account id, None when resolved at deploy time
        dify_image_tag: Tag of the dify-api and dify-web images
        dify_sandbox_image_tag: Tag of the dify-sandbox image
        dify_plugin_daemon_image_tag: Tag of the dify-plugin-daemon image
        allow_any_syscalls: Disable the sandbox syscall allow-list
        use_cloud_front: Put CloudFront in front of the ALB (default True)
        internal_alb: Make the ALB internal (only without CloudFront)
        use_fargate_spot: Run services on Fargate Spot capacity
        domain_name: Route 53 hosted zone for a custom domain
        sub_domain: Sub-domain of domain_name serving Dify
        vpc_id: Import an existing VPC instead of creating one
        vpc_isolated: Create a VPC without internet access
        use_nat_instance: Use a NAT instance instead of a NAT gateway
        is_redis_multi_az: Replicate ElastiCache across AZs
        enable_aurora_scales_to_zero: Let Aurora Serverless v2 pause at 0 ACU
        aurora_backup_retention_days: Aurora backup retention (1-35)
        setup_email: Create an SES identity for Dify's outgoing mail
        allowed_ipv4_cidrs: IPv4 ranges allowed to reach Dify
        allowed_ipv6_cidrs: IPv6 ranges allowed to reach Dify
        custom_ecr_repository_name: Pull images from this ECR repository
        additional_environment_variables: Extra variables for the services
    """
    environment_name: str | None = None
    aws_region: str | None = None
    aws_account: str | None = None
    dify_image_tag: str | None = None
    dify_sandbox_image_tag: str | None = None
    dify_plugin_daemon_image_tag: str | None = None
    allow_any_syscalls: bool | None = None
    use_cloud_front: bool | None = None
    internal_alb: bool | None = None
    use_fargate_spot: bool | None = None
    domain_name: str | None = None
    sub_domain: str | None = None
    vpc_id: str | None = None
    vpc_isolated: bool | None = None
    use_nat_instance: bool | None = None
    is_redis_multi_az: bool | None = None
    enable_aurora_scales_to_zero: bool | None = None
    aurora_backup_retention_days: int | None = None
    setup_email: bool | None = None
    allowed_ipv4_cidrs: tuple[str, ...] | None = None
    allowed_ipv6_cidrs: tuple[str, ...] | None = None
    custom_ecr_repository_name: str | None = None
    additional_environment_variables: tuple[AdditionalEnvironmentVariable, ...] = ()

    @property
    def secret_references(self) -> list[SecretReference]:
        """Secrets Manager references among the additional variables."""
        return [
            variable.value
            for variable in self.additional_environment_variables
            if isinstance(variable.value, SecretReference)
        ]


# --- Network variants ---

@dataclass(frozen=True)
class NewVpc:
    """Create a fresh VPC."""
    use_nat_instance: bool = False
    isolated: bool = False


@dataclass(frozen=True)
class ImportedVpc:
    """Deploy into an existing VPC."""
    vpc_id: str


# --- Edge variants ---

@dataclass(frozen=True)
class CloudFrontEdge:
    """Public ALB reachable only through a CloudFront distribution."""
    sub_domain: str
    allowed_ipv4_cidrs: tuple[str, ...] = ()
    allowed_ipv6_cidrs: tuple[str, ...] = ()

    @property
    def restricts_ip_addresses(self) -> bool:
        return bool(self.allowed_ipv4_cidrs or self.allowed_ipv6_cidrs)


@dataclass(frozen=True)
class AlbEdge:
    """ALB serving traffic directly (internet-facing or internal)."""
    internal: bool
    sub_domain: str
    allowed_ipv4_cidrs: tuple[str, ...] = ("0.0.0.0/0",)
    allowed_ipv6_cidrs: tuple[str, ...] = ()


# --- Email variant ---

@dataclass(frozen=True)
class SesEmail:
    """SES identity for Dify's outgoing mail."""
    domain_name: str


# --- Container image variants ---

@dataclass(frozen=True)
class ImageTags:
    """Image tags of the Dify containers."""
    dify: str
    sandbox: str
    plugin_daemon: str


@dataclass(frozen=True)
class PublicRegistryImages:
    """Pull images from Docker Hub (langgenius/*)."""
    tags: ImageTags


@dataclass(frozen=True)
class CustomRepositoryImages:
    """Pull images from a private ECR repository (tagged <image>_<tag>)."""
    repository_name: str
    tags: ImageTags


# --- Compute capacity ---

@dataclass(frozen=True)
class FargateCapacity:
    """Capacity provider weights for Fargate services."""
    use_spot: bool = False

    @property
    def weights(self) -> dict[str, int]:
        return {
            "FARGATE": 0 if self.use_spot else 1,
            "FARGATE_SPOT": 1 if self.use_spot else 0,
        }


@dataclass(frozen=True)
class DatabaseSettings:
    """Aurora PostgreSQL settings."""
    scales_to_zero: bool = False
    backup_retention_days: int = 1


@dataclass(frozen=True)
class CacheSettings:
    """ElastiCache settings."""
    multi_az: bool = True


@dataclass(frozen=True)
class Advisory:
    """Non-fatal warning surfaced to the operator."""
    code: str
    message: str


@dataclass(frozen=True)
class DomainSettings:
    """Custom domain served by Route 53, when configured."""
    domain_name: str | None = None
    sub_domain: str = "dify"

    @property
    def fqdn(self) -> str | None:
        if self.domain_name is None:
            return None
        return f"{self.sub_domain}.{self.domain_name}" if self.sub_domain else self.domain_name
