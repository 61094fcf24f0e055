"""
Pulumi program entry point for Dify on AWS.

Instantiates all component resources in dependency order:
1. Configuration (validated before anything is declared)
2. VPC -> Security Groups
3. S3 Buckets, Aurora PostgreSQL, ElastiCache, SES
4. ECS Cluster, ALB, CloudFront
5. Web and API services
"""

import pulumi
import pulumi_aws as aws

from dify_iac.configs.base import CloudFrontEdge
from dify_iac.configs.environment import get_config, resolve_region
from dify_iac.configs.normalize import build_config

# Networking
from dify_iac.components.networking.vpc import VpcComponent
from dify_iac.components.networking.security_groups import SecurityGroupsComponent

# Storage
from dify_iac.components.storage.s3_buckets import S3BucketsComponent
from dify_iac.components.storage.postgres import PostgresComponent
from dify_iac.components.storage.redis import RedisComponent

# Messaging
from dify_iac.components.messaging.email import EmailComponent

# Compute
from dify_iac.components.compute.cluster import ClusterComponent
from dify_iac.components.compute.alb import AlbComponent
from dify_iac.components.compute.web_service import WebServiceComponent
from dify_iac.components.compute.api_service import ApiServiceComponent

# Edge
from dify_iac.components.edge.cloudfront import CloudFrontComponent


def main() -> None:
    """Deploy Dify infrastructure."""
    # Load configuration
    props = get_config()

    # Names carry the region resources are actually created in
    aws_region = resolve_region(props.aws_region, aws.get_region().region)
    aws_account = props.aws_account or aws.get_caller_identity().account_id

    config = build_config(props, account=aws_account, region=aws_region)
    for advisory in config.advisories:
        pulumi.log.warn(f"[{advisory.code}] {advisory.message}")

    namer = config.namer
    base_name = namer.prefix
    environment = config.environment
    debug = pulumi.Config().get_bool("debug") or False

    pulumi.log.info(f"Deploying Dify environment '{environment}' to {aws_account}/{aws_region}")

    # --- Layer 1: Networking Foundation ---
    vpc = VpcComponent(
        name=base_name,
        environment=environment,
        network=config.network,
    )
    vpc_outputs = vpc.get_outputs()

    security_groups = SecurityGroupsComponent(
        name=base_name,
        environment=environment,
        vpc_id=vpc_outputs.vpc_id,
    )
    sg_outputs = security_groups.get_outputs()

    # --- Layer 2: Storage, Messaging ---
    s3_buckets = S3BucketsComponent(
        name=base_name,
        environment=environment,
        namer=namer,
    )
    s3_outputs = s3_buckets.get_outputs()

    postgres = PostgresComponent(
        name=namer.name("postgres"),
        environment=environment,
        namer=namer,
        settings=config.database,
        subnet_ids=vpc_outputs.private_subnet_ids,
        security_group_id=sg_outputs.database_sg_id,
    )

    redis = RedisComponent(
        name=namer.name("redis"),
        environment=environment,
        namer=namer,
        settings=config.cache,
        subnet_ids=vpc_outputs.private_subnet_ids,
        security_group_id=sg_outputs.cache_sg_id,
    )

    email = None
    if config.email is not None:
        email = EmailComponent(
            name=namer.name("email"),
            environment=environment,
            namer=namer,
            email=config.email,
            region=aws_region,
        )

    # --- Layer 3: Cluster and Edge ---
    cluster = ClusterComponent(
        name=base_name,
        environment=environment,
        namer=namer,
    )
    cluster_outputs = cluster.get_outputs()

    edge = config.edge
    if isinstance(edge, CloudFrontEdge):
        # Public ALB that only CloudFront may reach
        alb = AlbComponent(
            name=base_name,
            environment=environment,
            namer=namer,
            vpc_id=vpc_outputs.vpc_id,
            subnet_ids=vpc_outputs.public_subnet_ids,
            security_group_id=sg_outputs.alb_sg_id,
            access_log_bucket=s3_outputs.access_log_bucket_name,
        )
        cloudfront = CloudFrontComponent(
            name=base_name,
            environment=environment,
            namer=namer,
            edge=edge,
            domain=config.domain,
            alb_dns_name=alb.alb.dns_name,
            alb_security_group_id=sg_outputs.alb_sg_id,
        )
        dify_url = cloudfront.url
    else:
        alb = AlbComponent(
            name=base_name,
            environment=environment,
            namer=namer,
            vpc_id=vpc_outputs.vpc_id,
            subnet_ids=vpc_outputs.private_subnet_ids if edge.internal else vpc_outputs.public_subnet_ids,
            security_group_id=sg_outputs.alb_sg_id,
            internal=edge.internal,
            domain=config.domain if config.domain.domain_name else None,
            access_log_bucket=s3_outputs.access_log_bucket_name,
            allowed_ipv4_cidrs=edge.allowed_ipv4_cidrs,
            allowed_ipv6_cidrs=edge.allowed_ipv6_cidrs,
        )
        dify_url = alb.url
    alb_outputs = alb.get_outputs()

    # --- Layer 4: Services ---
    api = ApiServiceComponent(
        name=namer.name("api"),
        config=config,
        cluster_arn=cluster_outputs.cluster_arn,
        alb=alb,
        url=dify_url,
        subnet_ids=vpc_outputs.private_subnet_ids,
        security_group_id=sg_outputs.service_sg_id,
        storage_bucket_name=s3_outputs.storage_bucket_name,
        storage_bucket_arn=s3_outputs.storage_bucket_arn,
        postgres=postgres.get_outputs(),
        redis=redis.get_outputs(),
        region=aws_region,
        email=email.get_outputs() if email is not None else None,
        debug=debug,
    )

    web = WebServiceComponent(
        name=namer.name("web"),
        config=config,
        cluster_arn=cluster_outputs.cluster_arn,
        alb=alb,
        url=dify_url,
        subnet_ids=vpc_outputs.private_subnet_ids,
        security_group_id=sg_outputs.service_sg_id,
        storage_bucket_arn=s3_outputs.storage_bucket_arn,
        region=aws_region,
        debug=debug,
    )

    # --- Exports ---
    outputs = {
        "dify_url": dify_url,
        "environment": environment,
        "vpc_id": vpc_outputs.vpc_id,
        "alb_dns_name": alb_outputs.alb_dns_name,
        "cluster_name": cluster_outputs.cluster_name,
        "api_service_name": api.get_outputs().service_name,
        "web_service_name": web.get_outputs().service_name,
        "postgres_endpoint": postgres.get_outputs().endpoint,
        "redis_endpoint": redis.get_outputs().endpoint,
        "storage_bucket": s3_outputs.storage_bucket_name,
        "access_log_bucket": s3_outputs.access_log_bucket_name,
    }

    for key, value in outputs.items():
        pulumi.export(key, value)


# Execute
main()
