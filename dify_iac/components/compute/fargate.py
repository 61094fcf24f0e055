"""
Shared building blocks for Dify Fargate services.
"""

import pulumi
import pulumi_aws as aws

from dify_iac.configs.base import FargateCapacity

LOG_RETENTION_DAYS = 30
HEALTH_CHECK_GRACE_PERIOD_SECONDS = 90


def capacity_provider_strategies(
    capacity: FargateCapacity,
) -> list[aws.ecs.ServiceCapacityProviderStrategyArgs]:
    """Capacity provider strategy selecting FARGATE or FARGATE_SPOT."""
    return [
        aws.ecs.ServiceCapacityProviderStrategyArgs(capacity_provider=provider, weight=weight)
        for provider, weight in capacity.weights.items()
    ]


def log_configuration(
    log_group_name: pulumi.Input[str],
    region: pulumi.Input[str],
    stream_prefix: str,
) -> dict:
    return {
        "logDriver": "awslogs",
        "options": {
            "awslogs-group": log_group_name,
            "awslogs-region": region,
            "awslogs-stream-prefix": stream_prefix,
        },
    }


def environment_entries(values: dict[str, pulumi.Input[str]]) -> list[dict]:
    """ECS `environment` list from a name -> value mapping."""
    return [{"name": key, "value": value} for key, value in values.items()]


def http_health_check(port: int, path: str = "/") -> dict:
    """Container health check using wget (curl is missing from alpine images)."""
    return {
        "command": [
            "CMD-SHELL",
            f"wget --no-verbose --tries=1 --spider http://localhost:{port}{path} || exit 1",
        ],
        "interval": 15,
        "startPeriod": 30,
        "timeout": 5,
        "retries": 3,
    }
