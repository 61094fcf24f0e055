"""
Infrastructure constants for Dify on AWS.

Contains naming ceilings, CIDR blocks, ports, image defaults and default tags.
"""

from typing import Final

# Naming
RESOURCE_NAME_PREFIX: Final[str] = "dify"
DEFAULT_ENVIRONMENT_NAME: Final[str] = "dev"
FALLBACK_ENVIRONMENT_LABEL: Final[str] = "env"

# Maximum identifier length accepted by each resource type
NAME_MAX_LENGTHS: Final[dict[str, int]] = {
    "default": 255,
    "ecs_cluster": 255,
    "ecs_task_family": 255,
    "ecs_service": 255,
    "subnet_group": 255,
    "replication_group": 40,
    "db_cluster": 63,
    "load_balancer": 32,
    "target_group": 32,
    "secret": 512,
    "ssm_parameter": 2048,
    "log_group": 512,
    "iam_role": 64,
}

BUCKET_NAME_MIN_LENGTH: Final[int] = 3
BUCKET_NAME_MAX_LENGTH: Final[int] = 63
BUCKET_NAME_FILLER: Final[str] = "0"

# Secrets Manager appends "-" + 6 random characters to every secret ARN
SECRET_SUFFIX_PATTERN: Final[str] = r"-.{6}$"

# Aurora backup retention bounds (days)
AURORA_BACKUP_RETENTION_RANGE: Final[tuple[int, int]] = (1, 35)

# VPC Configuration
VPC_CIDR: Final[str] = "10.0.0.0/16"
AVAILABILITY_ZONE_COUNT: Final[int] = 2

SUBNET_CIDRS: Final[dict[str, list[str]]] = {
    "public": ["10.0.0.0/24", "10.0.1.0/24"],
    "private": ["10.0.10.0/24", "10.0.11.0/24"],
}

NAT_INSTANCE_TYPE: Final[str] = "t4g.nano"

# Interface endpoints needed when the VPC has no route to the internet
ISOLATED_INTERFACE_ENDPOINTS: Final[list[str]] = [
    "ecr.api",
    "ecr.dkr",
    "logs",
    "secretsmanager",
    "ssm",
    "ssmmessages",
]

# Port configurations
PORTS: Final[dict[str, int]] = {
    "http": 80,
    "https": 443,
    "web": 3000,
    "api": 5001,
    "plugin_daemon": 5002,
    "sandbox": 8194,
    "postgres": 5432,
    "redis": 6379,
}

# Container images
PUBLIC_IMAGE_REPOSITORIES: Final[dict[str, str]] = {
    "web": "langgenius/dify-web",
    "api": "langgenius/dify-api",
    "sandbox": "langgenius/dify-sandbox",
    "plugin-daemon": "langgenius/dify-plugin-daemon",
}

DEFAULT_IMAGE_TAGS: Final[dict[str, str]] = {
    "dify": "latest",
    "sandbox": "latest",
    "plugin-daemon": "main-local",
}

SERVICE_TARGETS: Final[tuple[str, ...]] = ("web", "api", "worker", "sandbox", "plugin-daemon")

# ElastiCache
REDIS_NODE_TYPE: Final[str] = "cache.t4g.small"
REDIS_ENGINE_VERSION: Final[str] = "8.0"

# Aurora PostgreSQL
AURORA_ENGINE_VERSION: Final[str] = "16.6"
AURORA_DATABASE_NAME: Final[str] = "main"
AURORA_CAPACITY: Final[dict[str, float]] = {
    "min": 0.5,
    "min_scales_to_zero": 0.0,
    "max": 2.0,
}

MARKETPLACE_URL: Final[str] = "https://marketplace.dify.ai"

# Default tags applied to all resources
DEFAULT_TAGS: Final[dict[str, str]] = {
    "Project": "dify",
    "ManagedBy": "pulumi",
}
