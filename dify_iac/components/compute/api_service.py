"""
Dify API Service Component (api, worker, sandbox and plugin daemon on Fargate).

All four containers share one task so they reach each other on localhost:
1. main (dify-api, 5001): REST API for console, web apps and service API.
   Runs database migrations on start.
2. worker (dify-api with MODE=worker): Celery worker (dataset indexing, mail).
3. sandbox (dify-sandbox, 8194): isolated code execution for workflows.
4. plugin-daemon (dify-plugin-daemon, 5002): plugin runtime and installs.

Generated secrets (<prefix>/api/keys, JSON fields):
- secret_key: Flask session signing
- sandbox_api_key: api <-> sandbox
- plugin_daemon_key: api <-> plugin daemon
- inner_api_key: plugin daemon -> api

ALB routes:
- /console/api/*, /api/*, /v1/*, /files/* -> main
- /e/* -> plugin-daemon (plugin endpoints)
"""

from dataclasses import dataclass

import pulumi
import pulumi_aws as aws
import pulumi_random as random

from dify_iac.components.compute.alb import AlbComponent
from dify_iac.components.compute.environment_variables import ReferenceResolver, plain_environment
from dify_iac.components.compute.fargate import (
    HEALTH_CHECK_GRACE_PERIOD_SECONDS,
    LOG_RETENTION_DAYS,
    capacity_provider_strategies,
    environment_entries,
    log_configuration,
)
from dify_iac.components.compute.images import resolve_image
from dify_iac.components.messaging.email import EmailOutputs
from dify_iac.components.security.task_roles import EcsTaskRolesComponent
from dify_iac.components.storage.postgres import PostgresOutputs
from dify_iac.components.storage.redis import RedisOutputs
from dify_iac.configs.constants import MARKETPLACE_URL, PORTS
from dify_iac.configs.normalize import DifyConfig
from dify_iac.utils.tags import create_tags

API_TARGET_PRIORITY = 10
PLUGIN_DAEMON_TARGET_PRIORITY = 20

API_PATH_PATTERNS = ["/console/api/*", "/api/*", "/v1/*", "/files/*"]
PLUGIN_DAEMON_PATH_PATTERNS = ["/e/*"]

PLUGIN_DATABASE_NAME = "dify_plugin"

# Every x86_64 syscall number, used to lift the sandbox allow-list
ALL_SYSCALLS = ",".join(str(number) for number in range(457))

GENERATED_KEYS = {
    "secret_key": 42,
    "sandbox_api_key": 30,
    "plugin_daemon_key": 42,
    "inner_api_key": 42,
}


def secret_field(secret_arn: pulumi.Input[str], field: str) -> pulumi.Output[str]:
    """valueFrom of a single JSON field of a Secrets Manager secret."""
    return pulumi.Output.from_input(secret_arn).apply(lambda arn: f"{arn}:{field}::")


def secret_entries(values: dict[str, pulumi.Input[str]]) -> list[dict]:
    """ECS `secrets` list from a name -> valueFrom mapping."""
    return [{"name": key, "valueFrom": value} for key, value in values.items()]


@dataclass
class ApiServiceOutputs:
    """Output values from API service component."""
    service_name: pulumi.Output[str]
    task_definition_arn: pulumi.Output[str]
    log_group_name: pulumi.Output[str]
    keys_secret_arn: pulumi.Output[str]


class ApiServiceComponent(pulumi.ComponentResource):
    """
    Fargate service running dify-api, its Celery worker, the code sandbox
    and the plugin daemon.
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
        storage_bucket_name: pulumi.Input[str],
        storage_bucket_arn: pulumi.Input[str],
        postgres: PostgresOutputs,
        redis: RedisOutputs,
        region: pulumi.Input[str],
        email: EmailOutputs | None = None,
        debug: bool = False,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:compute:ApiService", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)
        environment = config.environment
        namer = config.namer
        targets = ("api", "worker", "sandbox", "plugin-daemon")
        variables = [
            variable for variable in config.additional_environment_variables
            if any(variable.applies_to(target) for target in targets)
        ]
        resolver = ReferenceResolver(parent=self)

        self.log_group = aws.cloudwatch.LogGroup(
            f"{name}-logs",
            name=namer.log_group_name("api"),
            retention_in_days=LOG_RETENTION_DAYS,
            tags=create_tags(environment, f"{name}-logs"),
            opts=child_opts,
        )

        # Generated keys
        passwords = {
            key: random.RandomPassword(
                f"{name}-{key.replace('_', '-')}",
                length=length,
                special=False,
                opts=child_opts,
            )
            for key, length in GENERATED_KEYS.items()
        }

        self.keys_secret = aws.secretsmanager.Secret(
            f"{name}-keys",
            name=namer.secret_name("api", "keys"),
            description="Keys shared between Dify api, sandbox and plugin daemon",
            recovery_window_in_days=0,
            tags=create_tags(environment, f"{name}-keys"),
            opts=child_opts,
        )

        aws.secretsmanager.SecretVersion(
            f"{name}-keys-version",
            secret_id=self.keys_secret.id,
            secret_string=pulumi.Output.json_dumps({
                key: password.result for key, password in passwords.items()
            }),
            opts=child_opts,
        )

        # Roles
        extra_secret_arns, extra_parameter_arns = resolver.referenced_arns(variables)
        secret_arns = [self.keys_secret.arn, postgres.secret_arn, redis.secret_arn, *extra_secret_arns]
        if email is not None:
            secret_arns.append(email.credentials_secret_arn)

        self.roles = EcsTaskRolesComponent(
            f"{name}-roles",
            environment=environment,
            namer=namer,
            service="api",
            storage_bucket_arn=storage_bucket_arn,
            secret_arns=secret_arns,
            parameter_arns=[redis.broker_url_parameter_arn, *extra_parameter_arns],
            opts=child_opts,
        )

        # Container environment
        keys_arn = self.keys_secret.arn
        database_secrets = {
            "DB_USERNAME": secret_field(postgres.secret_arn, "username"),
            "DB_PASSWORD": secret_field(postgres.secret_arn, "password"),
        }

        api_environment = {
            "LOG_LEVEL": "DEBUG" if debug else "ERROR",
            "DEBUG": "true" if debug else "false",
            "CONSOLE_WEB_URL": url,
            "CONSOLE_API_URL": url,
            "SERVICE_API_URL": url,
            "APP_WEB_URL": url,
            "FILES_URL": url,
            "DB_HOST": postgres.endpoint,
            "DB_PORT": postgres.port.apply(str),
            "DB_DATABASE": postgres.database_name,
            "REDIS_HOST": redis.endpoint,
            "REDIS_PORT": str(redis.port),
            "REDIS_USE_SSL": "true",
            "REDIS_DB": "0",
            "STORAGE_TYPE": "s3",
            "S3_BUCKET_NAME": storage_bucket_name,
            "S3_REGION": region,
            "S3_USE_AWS_MANAGED_IAM": "true",
            "VECTOR_STORE": "pgvector",
            "PGVECTOR_HOST": postgres.endpoint,
            "PGVECTOR_PORT": postgres.port.apply(str),
            "PGVECTOR_DATABASE": postgres.database_name,
            "CODE_EXECUTION_ENDPOINT": f"http://localhost:{PORTS['sandbox']}",
            "PLUGIN_DAEMON_URL": f"http://localhost:{PORTS['plugin_daemon']}",
            "MARKETPLACE_API_URL": MARKETPLACE_URL,
            "MARKETPLACE_URL": MARKETPLACE_URL,
        }
        api_secrets = {
            **database_secrets,
            "PGVECTOR_USER": secret_field(postgres.secret_arn, "username"),
            "PGVECTOR_PASSWORD": secret_field(postgres.secret_arn, "password"),
            "REDIS_PASSWORD": redis.secret_arn,
            "CELERY_BROKER_URL": redis.broker_url_parameter_arn,
            "SECRET_KEY": secret_field(keys_arn, "secret_key"),
            "CODE_EXECUTION_API_KEY": secret_field(keys_arn, "sandbox_api_key"),
            "PLUGIN_DAEMON_KEY": secret_field(keys_arn, "plugin_daemon_key"),
            "INNER_API_KEY_FOR_PLUGIN": secret_field(keys_arn, "inner_api_key"),
        }

        if email is not None:
            api_environment.update({
                "MAIL_TYPE": "smtp",
                "MAIL_DEFAULT_SEND_FROM": email.sender_address,
                "SMTP_SERVER": email.smtp_server,
                "SMTP_PORT": str(email.smtp_port),
                "SMTP_USE_TLS": "true",
                "SMTP_OPPORTUNISTIC_TLS": "true",
            })
            api_secrets.update({
                "SMTP_USERNAME": secret_field(email.credentials_secret_arn, "username"),
                "SMTP_PASSWORD": secret_field(email.credentials_secret_arn, "password"),
            })

        def api_container(container_name: str, target: str, mode: dict[str, str]) -> dict:
            return {
                "name": container_name,
                "image": resolve_image(config.images, "api", parent=self),
                "essential": True,
                "environment": environment_entries({
                    **api_environment,
                    **mode,
                    **plain_environment(target, variables),
                }),
                "secrets": [
                    *secret_entries(api_secrets),
                    *resolver.container_secrets(target, variables),
                ],
                "logConfiguration": log_configuration(self.log_group.name, region, container_name),
            }

        main = api_container("main", "api", {"MODE": "api", "MIGRATION_ENABLED": "true"})
        main["portMappings"] = [{"containerPort": PORTS["api"], "protocol": "tcp"}]
        main["healthCheck"] = {
            "command": ["CMD-SHELL", f"curl -f http://localhost:{PORTS['api']}/health || exit 1"],
            "interval": 15,
            "startPeriod": 90,
            "timeout": 5,
            "retries": 15,
        }

        worker = api_container("worker", "worker", {"MODE": "worker"})

        sandbox_environment = {
            "GIN_MODE": "release",
            "WORKER_TIMEOUT": "15",
            "ENABLE_NETWORK": "true",
            "SANDBOX_PORT": str(PORTS["sandbox"]),
        }
        if config.allow_any_syscalls:
            sandbox_environment["ALLOWED_SYSCALLS"] = ALL_SYSCALLS

        sandbox = {
            "name": "sandbox",
            "image": resolve_image(config.images, "sandbox", parent=self),
            "essential": True,
            "portMappings": [{"containerPort": PORTS["sandbox"], "protocol": "tcp"}],
            "environment": environment_entries({
                **sandbox_environment,
                **plain_environment("sandbox", variables),
            }),
            "secrets": [
                *secret_entries({"API_KEY": secret_field(keys_arn, "sandbox_api_key")}),
                *resolver.container_secrets("sandbox", variables),
            ],
            "logConfiguration": log_configuration(self.log_group.name, region, "sandbox"),
        }

        plugin_daemon = {
            "name": "plugin-daemon",
            "image": resolve_image(config.images, "plugin-daemon", parent=self),
            "essential": True,
            "portMappings": [{"containerPort": PORTS["plugin_daemon"], "protocol": "tcp"}],
            "environment": environment_entries({
                "GIN_MODE": "release",
                "SERVER_PORT": str(PORTS["plugin_daemon"]),
                "DIFY_INNER_API_URL": f"http://localhost:{PORTS['api']}",
                "DB_HOST": postgres.endpoint,
                "DB_PORT": postgres.port.apply(str),
                "DB_DATABASE": PLUGIN_DATABASE_NAME,
                "REDIS_HOST": redis.endpoint,
                "REDIS_PORT": str(redis.port),
                "REDIS_USE_SSL": "true",
                "PLUGIN_STORAGE_TYPE": "aws_s3",
                "PLUGIN_STORAGE_OSS_BUCKET": storage_bucket_name,
                "S3_USE_AWS_MANAGED_IAM": "true",
                "AWS_REGION": region,
                "PLUGIN_REMOTE_INSTALLING_HOST": "localhost",
                "PLUGIN_WORKING_PATH": "/app/storage/cwd",
                "MARKETPLACE_API_URL": MARKETPLACE_URL,
                **plain_environment("plugin-daemon", variables),
            }),
            "secrets": [
                *secret_entries({
                    **database_secrets,
                    "REDIS_PASSWORD": redis.secret_arn,
                    "SERVER_KEY": secret_field(keys_arn, "plugin_daemon_key"),
                    "DIFY_INNER_API_KEY": secret_field(keys_arn, "inner_api_key"),
                }),
                *resolver.container_secrets("plugin-daemon", variables),
            ],
            "logConfiguration": log_configuration(self.log_group.name, region, "plugin-daemon"),
        }

        self.task_definition = aws.ecs.TaskDefinition(
            f"{name}-task",
            family=namer.task_family("api"),
            cpu="1024",
            memory="2048",
            network_mode="awsvpc",
            requires_compatibilities=["FARGATE"],
            runtime_platform=aws.ecs.TaskDefinitionRuntimePlatformArgs(
                cpu_architecture="X86_64",
                operating_system_family="LINUX",
            ),
            execution_role_arn=self.roles.execution_role.arn,
            task_role_arn=self.roles.task_role.arn,
            container_definitions=pulumi.Output.json_dumps([main, worker, sandbox, plugin_daemon]),
            tags=create_tags(environment, f"{name}-task"),
            opts=child_opts,
        )

        api_target = alb.add_target(
            "api",
            port=PORTS["api"],
            health_check_path="/health",
            path_patterns=API_PATH_PATTERNS,
            priority=API_TARGET_PRIORITY,
        )
        plugin_target = alb.add_target(
            "plugin-daemon",
            port=PORTS["plugin_daemon"],
            health_check_path="/health/check",
            path_patterns=PLUGIN_DAEMON_PATH_PATTERNS,
            priority=PLUGIN_DAEMON_TARGET_PRIORITY,
        )

        self.service = aws.ecs.Service(
            f"{name}-service",
            name=namer.service_name("api"),
            cluster=cluster_arn,
            task_definition=self.task_definition.arn,
            desired_count=1,
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
                    target_group_arn=api_target.arn,
                    container_name="main",
                    container_port=PORTS["api"],
                ),
                aws.ecs.ServiceLoadBalancerArgs(
                    target_group_arn=plugin_target.arn,
                    container_name="plugin-daemon",
                    container_port=PORTS["plugin_daemon"],
                ),
            ],
            tags=create_tags(environment, f"{name}-service"),
            opts=pulumi.ResourceOptions(parent=self, depends_on=alb.rules),
        )

        self.register_outputs({
            "service_name": self.service.name,
            "task_definition_arn": self.task_definition.arn,
            "log_group_name": self.log_group.name,
            "keys_secret_arn": self.keys_secret.arn,
        })

    def get_outputs(self) -> ApiServiceOutputs:
        """Get API service output values."""
        return ApiServiceOutputs(
            service_name=self.service.name,
            task_definition_arn=self.task_definition.arn,
            log_group_name=self.log_group.name,
            keys_secret_arn=self.keys_secret.arn,
        )
