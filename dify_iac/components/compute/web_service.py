"""
Dify Web Service Component (Next.js frontend on Fargate).

Flow:
1. Log group /aws/ecs/<prefix>-web (30 days).
2. Execution/task roles (EcsTaskRolesComponent).
3. Task definition: single 'main' container on port 3000.
   - CONSOLE_API_URL / APP_API_URL point at the public Dify URL.
   - HOSTNAME=0.0.0.0 so the ALB health check reaches the Next.js server.
4. Service: 2 tasks behind the ALB catch-all rule (/*), circuit breaker
   with rollback, ECS Exec enabled.
"""

from dataclasses import dataclass

import pulumi
import pulumi_aws as aws

from dify_iac.components.compute.alb import AlbComponent
from dify_iac.components.compute.environment_variables import ReferenceResolver, plain_environment
from dify_iac.components.compute.fargate import (
    HEALTH_CHECK_GRACE_PERIOD_SECONDS,
    LOG_RETENTION_DAYS,
    capacity_provider_strategies,
    environment_entries,
    http_health_check,
    log_configuration,
)
from dify_iac.components.compute.images import resolve_image
from dify_iac.components.security.task_roles import EcsTaskRolesComponent
from dify_iac.configs.constants import MARKETPLACE_URL, PORTS
from dify_iac.configs.normalize import DifyConfig
from dify_iac.utils.tags import create_tags

WEB_TARGET_PRIORITY = 100


@dataclass
class WebServiceOutputs:
    """Output values from web service component."""
    service_name: pulumi.Output[str]
    task_definition_arn: pulumi.Output[str]
    log_group_name: pulumi.Output[str]


class WebServiceComponent(pulumi.ComponentResource):
    """
    Fargate service running dify-web.
    """

    def __init__(
        self,
        name: str,
        config: DifyConfig,
        cluster_arn: pulumi.Input[str],
        alb: AlbComponent,
        url: pulumi.Input[str],
        subnet_ids: pulumi.Input[list[str]],
        security_group_id: pulumi.Input[str],
        storage_bucket_arn: pulumi.Input[str],
        region: pulumi.Input[str],
        debug: bool = False,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:compute:WebService", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)
        environment = config.environment
        namer = config.namer
        port = PORTS["web"]
        variables = [
            variable for variable in config.additional_environment_variables
            if variable.applies_to("web")
        ]
        resolver = ReferenceResolver(parent=self)

        self.log_group = aws.cloudwatch.LogGroup(
            f"{name}-logs",
            name=namer.log_group_name("web"),
            retention_in_days=LOG_RETENTION_DAYS,
            tags=create_tags(environment, f"{name}-logs"),
            opts=child_opts,
        )

        secret_arns, parameter_arns = resolver.referenced_arns(variables)
        self.roles = EcsTaskRolesComponent(
            f"{name}-roles",
            environment=environment,
            namer=namer,
            service="web",
            storage_bucket_arn=storage_bucket_arn,
            secret_arns=secret_arns,
            parameter_arns=parameter_arns,
            opts=child_opts,
        )

        container = {
            "name": "main",
            "image": resolve_image(config.images, "web", parent=self),
            "essential": True,
            "portMappings": [{"containerPort": port, "protocol": "tcp"}],
            "environment": environment_entries({
                "LOG_LEVEL": "DEBUG" if debug else "ERROR",
                "DEBUG": "true" if debug else "false",
                "CONSOLE_API_URL": url,
                "APP_API_URL": url,
                "HOSTNAME": "0.0.0.0",
                "PORT": str(port),
                "MARKETPLACE_API_URL": MARKETPLACE_URL,
                "MARKETPLACE_URL": MARKETPLACE_URL,
                **plain_environment("web", variables),
            }),
            "secrets": resolver.container_secrets("web", variables),
            "logConfiguration": log_configuration(self.log_group.name, region, "main"),
            "healthCheck": http_health_check(port),
        }

        self.task_definition = aws.ecs.TaskDefinition(
            f"{name}-task",
            family=namer.task_family("web"),
            cpu="256",
            memory="512",
            network_mode="awsvpc",
            requires_compatibilities=["FARGATE"],
            runtime_platform=aws.ecs.TaskDefinitionRuntimePlatformArgs(
                cpu_architecture="X86_64",
                operating_system_family="LINUX",
            ),
            execution_role_arn=self.roles.execution_role.arn,
            task_role_arn=self.roles.task_role.arn,
            container_definitions=pulumi.Output.json_dumps([container]),
            tags=create_tags(environment, f"{name}-task"),
            opts=child_opts,
        )

        target_group = alb.add_target(
            "web",
            port=port,
            health_check_path="/",
            path_patterns=["/*"],
            priority=WEB_TARGET_PRIORITY,
        )

        self.service = aws.ecs.Service(
            f"{name}-service",
            name=namer.service_name("web"),
            cluster=cluster_arn,
            task_definition=self.task_definition.arn,
            desired_count=2,
            capacity_provider_strategies=capacity_provider_strategies(config.capacity),
            enable_execute_command=True,
            deployment_minimum_healthy_percent=100,
            deployment_maximum_percent=200,
            health_check_grace_period_seconds=HEALTH_CHECK_GRACE_PERIOD_SECONDS,
            deployment_circuit_breaker=aws.ecs.ServiceDeploymentCircuitBreakerArgs(
                enable=True,
                rollback=True,
            ),
            network_configuration=aws.ecs.ServiceNetworkConfigurationArgs(
                subnets=subnet_ids,
                security_groups=[security_group_id],
                assign_public_ip=False,
            ),
            load_balancers=[
                aws.ecs.ServiceLoadBalancerArgs(
                    target_group_arn=target_group.arn,
                    container_name="main",
                    container_port=port,
                ),
            ],
            tags=create_tags(environment, f"{name}-service"),
            opts=pulumi.ResourceOptions(parent=self, depends_on=alb.rules),
        )

        self.register_outputs({
            "service_name": self.service.name,
            "task_definition_arn": self.task_definition.arn,
            "log_group_name": self.log_group.name,
        })

    def get_outputs(self) -> WebServiceOutputs:
        """Get web service output values."""
        return WebServiceOutputs(
            service_name=self.service.name,
            task_definition_arn=self.task_definition.arn,
            log_group_name=self.log_group.name,
        )
