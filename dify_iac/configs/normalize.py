"""
Normalization of operator configuration into a fully resolved DifyConfig.

All defaults are applied here, in one place, and each optional subsystem is
resolved to exactly one variant. Components only ever see DifyConfig.
"""

from dataclasses import dataclass

from dify_iac.configs.base import (
    Advisory,
    AlbEdge,
    CacheSettings,
    CloudFrontEdge,
    CustomRepositoryImages,
    DatabaseSettings,
    DomainSettings,
    EnvironmentProps,
    FargateCapacity,
    ImageTags,
    ImportedVpc,
    NewVpc,
    PublicRegistryImages,
    SesEmail,
)
from dify_iac.configs.constants import DEFAULT_ENVIRONMENT_NAME, DEFAULT_IMAGE_TAGS
from dify_iac.configs.schemas import AdditionalEnvironmentVariable
from dify_iac.configs.validation import validate_props
from dify_iac.utils.naming import ResourceNamer

DEFAULT_SUB_DOMAIN = "dify"


@dataclass(frozen=True)
class DifyConfig:
    """
    Resolved, immutable configuration consumed by every component.

    Attributes:
        namer: Naming context (environment, account, region)
        network: NewVpc or ImportedVpc
        edge: CloudFrontEdge or AlbEdge
        email: SesEmail, or None when email is not set up
        images: PublicRegistryImages or CustomRepositoryImages
        capacity: Fargate / Fargate Spot weights
        domain: Custom domain settings
        database: Aurora settings
        cache: ElastiCache settings
        allow_any_syscalls: Disable the sandbox syscall allow-list
        additional_environment_variables: Extra service variables
        advisories: Warnings raised while validating the input
    """
    namer: ResourceNamer
    network: NewVpc | ImportedVpc
    edge: CloudFrontEdge | AlbEdge
    email: SesEmail | None
    images: PublicRegistryImages | CustomRepositoryImages
    capacity: FargateCapacity
    domain: DomainSettings
    database: DatabaseSettings
    cache: CacheSettings
    allow_any_syscalls: bool = False
    additional_environment_variables: tuple[AdditionalEnvironmentVariable, ...] = ()
    advisories: tuple[Advisory, ...] = ()

    @property
    def environment(self) -> str:
        return self.namer.environment

    @property
    def uses_cloud_front(self) -> bool:
        return isinstance(self.edge, CloudFrontEdge)


def _select_network(props: EnvironmentProps) -> NewVpc | ImportedVpc:
    if props.vpc_id:
        return ImportedVpc(vpc_id=props.vpc_id)
    return NewVpc(
        use_nat_instance=bool(props.use_nat_instance),
        isolated=bool(props.vpc_isolated),
    )


def _select_edge(props: EnvironmentProps, sub_domain: str) -> CloudFrontEdge | AlbEdge:
    ipv4 = tuple(props.allowed_ipv4_cidrs or ())
    ipv6 = tuple(props.allowed_ipv6_cidrs or ())
    if props.use_cloud_front is not False:
        return CloudFrontEdge(sub_domain=sub_domain, allowed_ipv4_cidrs=ipv4, allowed_ipv6_cidrs=ipv6)
    return AlbEdge(
        internal=bool(props.internal_alb),
        sub_domain=sub_domain,
        allowed_ipv4_cidrs=ipv4 if props.allowed_ipv4_cidrs is not None else ("0.0.0.0/0",),
        allowed_ipv6_cidrs=ipv6,
    )


def _select_images(props: EnvironmentProps) -> PublicRegistryImages | CustomRepositoryImages:
    tags = ImageTags(
        dify=props.dify_image_tag or DEFAULT_IMAGE_TAGS["dify"],
        sandbox=props.dify_sandbox_image_tag or DEFAULT_IMAGE_TAGS["sandbox"],
        plugin_daemon=props.dify_plugin_daemon_image_tag or DEFAULT_IMAGE_TAGS["plugin-daemon"],
    )
    if props.custom_ecr_repository_name:
        return CustomRepositoryImages(repository_name=props.custom_ecr_repository_name, tags=tags)
    return PublicRegistryImages(tags=tags)


def normalize_props(
    props: EnvironmentProps,
    account: str | None = None,
    region: str | None = None,
    advisories: tuple[Advisory, ...] = (),
) -> DifyConfig:
    """
    Apply defaults and select one variant per optional subsystem.

    Args:
        props: Raw operator configuration (assumed valid)
        account: AWS account id, None if unknown at plan time
        region: AWS region, None if unknown at plan time
        advisories: Advisories produced by validation

    Returns:
        DifyConfig: Fully resolved configuration
    """
    environment_name = props.environment_name
    if environment_name is None:
        environment_name = DEFAULT_ENVIRONMENT_NAME
    sub_domain = props.sub_domain if props.sub_domain is not None else DEFAULT_SUB_DOMAIN

    return DifyConfig(
        namer=ResourceNamer(
            environment_name=environment_name,
            account=account or props.aws_account,
            region=region or props.aws_region,
        ),
        network=_select_network(props),
        edge=_select_edge(props, sub_domain),
        email=SesEmail(domain_name=props.domain_name) if props.setup_email and props.domain_name else None,
        images=_select_images(props),
        capacity=FargateCapacity(use_spot=bool(props.use_fargate_spot)),
        domain=DomainSettings(domain_name=props.domain_name or None, sub_domain=sub_domain),
        database=DatabaseSettings(
            scales_to_zero=bool(props.enable_aurora_scales_to_zero),
            backup_retention_days=props.aurora_backup_retention_days or 1,
        ),
        cache=CacheSettings(
            multi_az=props.is_redis_multi_az if props.is_redis_multi_az is not None else True,
        ),
        allow_any_syscalls=bool(props.allow_any_syscalls),
        additional_environment_variables=tuple(props.additional_environment_variables),
        advisories=tuple(advisories),
    )


def build_config(
    props: EnvironmentProps,
    account: str | None = None,
    region: str | None = None,
) -> DifyConfig:
    """
    Validate then normalize operator configuration (fail-fast).

    Raises:
        ConfigurationConflictError: If the configuration is contradictory
    """
    advisories = validate_props(props)
    return normalize_props(props, account=account, region=region, advisories=tuple(advisories))
