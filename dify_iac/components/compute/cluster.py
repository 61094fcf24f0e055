"""
ECS Cluster Component for Dify Fargate services.

The cluster only carries capacity providers; services pick FARGATE or
FARGATE_SPOT through their own capacity provider strategy.
"""

from dataclasses import dataclass

import pulumi
import pulumi_aws as aws

from dify_iac.utils.naming import ResourceNamer
from dify_iac.utils.tags import create_tags


@dataclass
class ClusterOutputs:
    """Output values from ECS cluster component."""
    cluster_arn: pulumi.Output[str]
    cluster_name: pulumi.Output[str]


class ClusterComponent(pulumi.ComponentResource):
    """
    ECS cluster with container insights and Fargate capacity providers.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        namer: ResourceNamer,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:compute:Cluster", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)

        self.cluster = aws.ecs.Cluster(
            f"{name}-cluster",
            name=namer.cluster_name(),
            settings=[
                aws.ecs.ClusterSettingArgs(
                    name="containerInsights",
                    value="enabled",
                ),
            ],
            tags=create_tags(environment, f"{name}-cluster"),
            opts=child_opts,
        )

        self.capacity_providers = aws.ecs.ClusterCapacityProviders(
            f"{name}-capacity-providers",
            cluster_name=self.cluster.name,
            capacity_providers=["FARGATE", "FARGATE_SPOT"],
            opts=child_opts,
        )

        # Services use a capacity provider strategy, so they must wait for the providers
        self.cluster_arn = pulumi.Output.all(self.cluster.arn, self.capacity_providers.id).apply(
            lambda args: args[0]
        )

        self.register_outputs({
            "cluster_arn": self.cluster_arn,
            "cluster_name": self.cluster.name,
        })

    def get_outputs(self) -> ClusterOutputs:
        """Get ECS cluster output values."""
        return ClusterOutputs(
            cluster_arn=self.cluster_arn,
            cluster_name=self.cluster.name,
        )
