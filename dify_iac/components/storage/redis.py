"""
ElastiCache (Valkey) Component for Dify cache and Celery broker.

Resources:
1. Subnet Group: private subnets of the VPC.
2. Auth Token: 30 random alphanumeric characters (pulumi_random), stored in
   Secrets Manager so tasks receive it as REDIS_PASSWORD.
3. Replication Group: Valkey 8 on cache.t4g.small, TLS in transit and
   encryption at rest. Multi-AZ adds one replica and automatic failover.
4. Broker URL: rediss:// URL for Celery, stored in SSM Parameter Store.

Celery refuses rediss:// URLs without ssl_cert_reqs, hence
`?ssl_cert_reqs=optional` on the broker URL.
"""

from dataclasses import dataclass

import pulumi
import pulumi_aws as aws
import pulumi_random as random

from dify_iac.configs.base import CacheSettings
from dify_iac.configs.constants import PORTS, REDIS_ENGINE_VERSION, REDIS_NODE_TYPE
from dify_iac.utils.naming import ResourceNamer
from dify_iac.utils.tags import create_tags


def broker_url(token: str, endpoint: str, port: int) -> str:
    """Celery broker URL (database 1) for a TLS-enabled replication group."""
    return f"rediss://:{token}@{endpoint}:{port}/1?ssl_cert_reqs=optional"


@dataclass
class RedisOutputs:
    """Output values from ElastiCache component."""
    endpoint: pulumi.Output[str]
    port: int
    secret_arn: pulumi.Output[str]
    broker_url_parameter_arn: pulumi.Output[str]


class RedisComponent(pulumi.ComponentResource):
    """
    Valkey replication group used by Dify as cache and Celery broker.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        namer: ResourceNamer,
        settings: CacheSettings,
        subnet_ids: pulumi.Input[list[str]],
        security_group_id: pulumi.Input[str],
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:storage:Redis", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)
        self.port = PORTS["redis"]

        self.subnet_group = aws.elasticache.SubnetGroup(
            f"{name}-subnet-group",
            name=namer.subnet_group_name("redis"),
            description="Dify ElastiCache subnets",
            subnet_ids=subnet_ids,
            tags=create_tags(environment, f"{name}-subnet-group"),
            opts=child_opts,
        )

        self.auth_token = random.RandomPassword(
            f"{name}-auth-token",
            length=30,
            special=False,
            opts=child_opts,
        )

        self.secret = aws.secretsmanager.Secret(
            f"{name}-auth-secret",
            name=namer.secret_name("redis", "auth"),
            description="ElastiCache auth token",
            recovery_window_in_days=0,
            tags=create_tags(environment, f"{name}-auth-secret"),
            opts=child_opts,
        )

        aws.secretsmanager.SecretVersion(
            f"{name}-auth-secret-version",
            secret_id=self.secret.id,
            secret_string=self.auth_token.result,
            opts=child_opts,
        )

        self.replication_group = aws.elasticache.ReplicationGroup(
            f"{name}-replication-group",
            replication_group_id=namer.replication_group_id(),
            description="Dify cache/queue cluster",
            engine="valkey",
            engine_version=REDIS_ENGINE_VERSION,
            parameter_group_name="default.valkey8",
            node_type=REDIS_NODE_TYPE,
            port=self.port,
            num_node_groups=1,
            replicas_per_node_group=1 if settings.multi_az else 0,
            automatic_failover_enabled=settings.multi_az,
            multi_az_enabled=settings.multi_az,
            subnet_group_name=self.subnet_group.name,
            security_group_ids=[security_group_id],
            transit_encryption_enabled=True,
            at_rest_encryption_enabled=True,
            auth_token=self.auth_token.result,
            apply_immediately=True,
            tags=create_tags(environment, f"{name}-replication-group"),
            opts=child_opts,
        )

        self.endpoint = self.replication_group.primary_endpoint_address

        self.broker_url = aws.ssm.Parameter(
            f"{name}-broker-url",
            name=namer.parameter_name("redis", "broker-url"),
            type="SecureString",
            value=pulumi.Output.all(self.auth_token.result, self.endpoint).apply(
                lambda args: broker_url(args[0], args[1], self.port)
            ),
            tags=create_tags(environment, f"{name}-broker-url"),
            opts=child_opts,
        )

        self.register_outputs({
            "endpoint": self.endpoint,
            "secret_arn": self.secret.arn,
            "broker_url_parameter_arn": self.broker_url.arn,
        })

    def get_outputs(self) -> RedisOutputs:
        """Get ElastiCache output values."""
        return RedisOutputs(
            endpoint=self.endpoint,
            port=self.port,
            secret_arn=self.secret.arn,
            broker_url_parameter_arn=self.broker_url.arn,
        )
