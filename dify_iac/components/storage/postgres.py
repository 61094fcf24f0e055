"""
Aurora PostgreSQL Component for Dify metadata and vector storage.

Aurora Serverless v2 (db.serverless) keeps the idle cost low:
- Capacity scales between 0.5 and 2 ACU by default.
- With scales_to_zero the cluster pauses at 0 ACU when unused
  (first request after a pause takes a few seconds).

Access Control:
1. Dify services (service_sg) -> Port 5432
2. Anyone else -> DENIED

Credentials: manage_master_user_password=True lets RDS generate the master
password and keep it in Secrets Manager. Tasks read it through ECS secrets.
The pgvector extension is used by Dify as its vector store.
"""

from dataclasses import dataclass

import pulumi
import pulumi_aws as aws

from dify_iac.configs.base import DatabaseSettings
from dify_iac.configs.constants import (
    AURORA_CAPACITY,
    AURORA_DATABASE_NAME,
    AURORA_ENGINE_VERSION,
    PORTS,
)
from dify_iac.utils.naming import ResourceNamer
from dify_iac.utils.tags import create_tags


@dataclass
class PostgresOutputs:
    """Output values from Aurora component."""
    endpoint: pulumi.Output[str]
    port: pulumi.Output[int]
    database_name: pulumi.Output[str]
    secret_arn: pulumi.Output[str]


class PostgresComponent(pulumi.ComponentResource):
    """
    Aurora PostgreSQL Serverless v2 cluster for Dify persistence.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        namer: ResourceNamer,
        settings: DatabaseSettings,
        subnet_ids: pulumi.Input[list[str]],
        security_group_id: pulumi.Input[str],
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:storage:Postgres", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)
        min_capacity = (
            AURORA_CAPACITY["min_scales_to_zero"] if settings.scales_to_zero else AURORA_CAPACITY["min"]
        )

        self.subnet_group = aws.rds.SubnetGroup(
            f"{name}-subnet-group",
            name=namer.subnet_group_name("postgres"),
            subnet_ids=subnet_ids,
            tags=create_tags(environment, f"{name}-subnet-group"),
            opts=child_opts,
        )

        self.cluster = aws.rds.Cluster(
            f"{name}-cluster",
            cluster_identifier=namer.db_cluster_identifier(),
            engine=aws.rds.EngineType.AURORA_POSTGRESQL,
            engine_mode="provisioned",
            engine_version=AURORA_ENGINE_VERSION,
            database_name=AURORA_DATABASE_NAME,
            master_username="postgres",
            manage_master_user_password=True,
            port=PORTS["postgres"],
            db_subnet_group_name=self.subnet_group.name,
            vpc_security_group_ids=[security_group_id],
            storage_encrypted=True,
            backup_retention_period=settings.backup_retention_days,
            skip_final_snapshot=True,
            serverlessv2_scaling_configuration=aws.rds.ClusterServerlessv2ScalingConfigurationArgs(
                min_capacity=min_capacity,
                max_capacity=AURORA_CAPACITY["max"],
                seconds_until_auto_pause=300 if settings.scales_to_zero else None,
            ),
            tags=create_tags(environment, f"{name}-cluster"),
            opts=child_opts,
        )

        self.writer = aws.rds.ClusterInstance(
            f"{name}-writer",
            cluster_identifier=self.cluster.id,
            instance_class="db.serverless",
            engine=self.cluster.engine,
            engine_version=self.cluster.engine_version,
            publicly_accessible=False,
            tags=create_tags(environment, f"{name}-writer"),
            opts=child_opts,
        )

        self.secret_arn = self.cluster.master_user_secrets.apply(
            lambda secrets: secrets[0].secret_arn
        )

        self.register_outputs({
            "endpoint": self.cluster.endpoint,
            "port": self.cluster.port,
            "database_name": self.cluster.database_name,
            "secret_arn": self.secret_arn,
        })

    def get_outputs(self) -> PostgresOutputs:
        """Get Aurora output values."""
        return PostgresOutputs(
            endpoint=self.cluster.endpoint,
            port=self.cluster.port,
            database_name=self.cluster.database_name,
            secret_arn=self.secret_arn,
        )
