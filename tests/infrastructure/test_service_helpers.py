"""
Tests for the pure helpers behind the Fargate services.

Validates:
1. Image references for Docker Hub and custom ECR repositories
2. Additional variables are split into plain values and secrets per service
3. Broker URL, IAM policy documents and container settings
"""

import json

import pytest

from dify_iac.components.compute.api_service import (
    ALL_SYSCALLS,
    API_PATH_PATTERNS,
    PLUGIN_DAEMON_PATH_PATTERNS,
    secret_entries,
)
from dify_iac.components.compute.alb import MAX_PATH_PATTERNS_PER_RULE
from dify_iac.components.compute.environment_variables import plain_environment, secret_variables
from dify_iac.components.compute.fargate import (
    capacity_provider_strategies,
    environment_entries,
    http_health_check,
    log_configuration,
)
from dify_iac.components.compute.images import image_reference, image_tag
from dify_iac.components.messaging.email import smtp_endpoint
from dify_iac.components.security.task_roles import ECS_TASKS_ASSUME_POLICY, _secrets_policy, _task_policy
from dify_iac.components.storage.redis import broker_url
from dify_iac.components.storage.s3_buckets import _tls_only_policy
from dify_iac.configs.base import CustomRepositoryImages, FargateCapacity, ImageTags, PublicRegistryImages

TAGS = ImageTags(dify="1.4.0", sandbox="0.2.12", plugin_daemon="0.1.1-local")
ECR_URL = "123456789012.dkr.ecr.us-west-2.amazonaws.com/dify-images"


class TestImages:
    """Tests for container image references."""

    @pytest.mark.parametrize("image, expected", [
        ("web", "langgenius/dify-web:1.4.0"),
        ("api", "langgenius/dify-api:1.4.0"),
        ("sandbox", "langgenius/dify-sandbox:0.2.12"),
        ("plugin-daemon", "langgenius/dify-plugin-daemon:0.1.1-local"),
    ])
    def test_public_registry(self, image, expected):
        """Docker Hub images use langgenius/<image>:<tag>."""
        assert image_reference(PublicRegistryImages(tags=TAGS), image) == expected

    @pytest.mark.parametrize("image, expected", [
        ("web", f"{ECR_URL}:dify-web_1.4.0"),
        ("api", f"{ECR_URL}:dify-api_1.4.0"),
        ("sandbox", f"{ECR_URL}:dify-sandbox_0.2.12"),
        ("plugin-daemon", f"{ECR_URL}:dify-plugin-daemon_0.1.1-local"),
    ])
    def test_custom_repository(self, image, expected):
        """ECR images share one repository, tagged <image>_<tag>."""
        images = CustomRepositoryImages(repository_name="dify-images", tags=TAGS)

        assert image_reference(images, image, ECR_URL) == expected

    def test_image_tag(self):
        """web and api share the Dify tag."""
        assert image_tag(TAGS, "web") == image_tag(TAGS, "api") == "1.4.0"

    def test_unknown_image(self):
        """Only Dify images have a reference."""
        with pytest.raises(KeyError):
            image_reference(PublicRegistryImages(tags=TAGS), "nginx")


class TestEnvironmentVariables:
    """Tests for splitting additional variables per service."""

    def test_plain_environment_for_web(self, additional_variables):
        """Web receives untargeted and web-targeted plain values only."""
        assert plain_environment("web", additional_variables) == {
            "OPENAI_API_BASE": "https://example.com/v1",
            "LOG_FORMAT": "json",
        }

    def test_plain_environment_for_api(self, additional_variables):
        """Variables targeted elsewhere are skipped."""
        assert plain_environment("api", additional_variables) == {
            "OPENAI_API_BASE": "https://example.com/v1",
        }

    def test_secret_variables(self, additional_variables):
        """Secret-backed variables are filtered by target too."""
        assert [v.key for v in secret_variables("worker", additional_variables)] == [
            "OPENAI_API_KEY",
            "ANTHROPIC_API_KEY",
        ]
        assert [v.key for v in secret_variables("web", additional_variables)] == ["ANTHROPIC_API_KEY"]

    def test_entries(self):
        """ECS environment and secrets lists keep the mapping order."""
        assert environment_entries({"A": "1", "B": "2"}) == [
            {"name": "A", "value": "1"},
            {"name": "B", "value": "2"},
        ]
        assert secret_entries({"A": "arn:1"}) == [{"name": "A", "valueFrom": "arn:1"}]


class TestFargateSettings:
    """Tests for shared Fargate settings."""

    @pytest.mark.parametrize("use_spot, fargate, spot", [(False, 1, 0), (True, 0, 1)])
    def test_capacity_provider_strategies(self, use_spot, fargate, spot):
        """Weights follow the Fargate/Spot variant."""
        strategies = capacity_provider_strategies(FargateCapacity(use_spot=use_spot))

        weights = {s.capacity_provider: s.weight for s in strategies}
        assert weights == {"FARGATE": fargate, "FARGATE_SPOT": spot}

    def test_health_check_uses_wget(self):
        """Alpine images ship wget, not curl."""
        check = http_health_check(3000)

        assert check["command"][0] == "CMD-SHELL"
        assert "wget" in check["command"][1]
        assert "http://localhost:3000/" in check["command"][1]

    def test_log_configuration(self):
        """Containers log to CloudWatch with a stream prefix."""
        config = log_configuration("/aws/ecs/dify-dev-web", "us-west-2", "main")

        assert config["logDriver"] == "awslogs"
        assert config["options"]["awslogs-stream-prefix"] == "main"

    def test_all_syscalls(self):
        """The lifted sandbox allow-list covers syscalls 0-456."""
        numbers = ALL_SYSCALLS.split(",")

        assert numbers[0] == "0"
        assert numbers[-1] == "456"
        assert len(numbers) == 457

    def test_alb_path_patterns_fit_rules(self):
        """API paths route through the ALB; each rule takes at most 5 patterns."""
        assert "/console/api/*" in API_PATH_PATTERNS
        assert PLUGIN_DAEMON_PATH_PATTERNS == ["/e/*"]
        assert MAX_PATH_PATTERNS_PER_RULE == 5


class TestStorageAndMessaging:
    """Tests for connection strings and endpoints."""

    def test_broker_url(self):
        """Celery needs ssl_cert_reqs on rediss:// URLs."""
        assert broker_url("token", "master.dify.cache.amazonaws.com", 6379) == (
            "rediss://:token@master.dify.cache.amazonaws.com:6379/1?ssl_cert_reqs=optional"
        )

    def test_smtp_endpoint(self):
        """SES SMTP endpoints are regional."""
        assert smtp_endpoint("eu-west-1") == "email-smtp.eu-west-1.amazonaws.com"


class TestPolicies:
    """Tests for IAM and bucket policy documents."""

    def test_assume_policy_for_ecs_tasks(self):
        """Task roles are assumable by ECS tasks only."""
        statement = json.loads(ECS_TASKS_ASSUME_POLICY)["Statement"][0]

        assert statement["Principal"] == {"Service": "ecs-tasks.amazonaws.com"}

    def test_secrets_policy_without_parameters(self):
        """Only secrets are granted when no parameter is referenced."""
        policy = json.loads(_secrets_policy(["arn:aws:secretsmanager:us-west-2:1:secret:a"], []))

        assert len(policy["Statement"]) == 1
        assert policy["Statement"][0]["Resource"] == ["arn:aws:secretsmanager:us-west-2:1:secret:a"]

    def test_secrets_policy_with_parameters(self):
        """Referenced parameters get their own statement."""
        policy = json.loads(_secrets_policy(["arn:s"], ["arn:p"]))

        assert policy["Statement"][1]["Resource"] == ["arn:p"]
        assert "ssm:GetParameters" in policy["Statement"][1]["Action"]

    def test_task_policy_scoped_to_bucket(self):
        """Task roles reach the storage bucket and its objects only."""
        policy = json.loads(_task_policy("arn:aws:s3:::dify-dev-storage"))

        assert policy["Statement"][0]["Resource"] == [
            "arn:aws:s3:::dify-dev-storage",
            "arn:aws:s3:::dify-dev-storage/*",
        ]

    def test_tls_only_bucket_policy(self):
        """Storage bucket denies requests without TLS."""
        statement = json.loads(_tls_only_policy("arn:aws:s3:::bucket"))["Statement"][0]

        assert statement["Effect"] == "Deny"
        assert statement["Condition"] == {"Bool": {"aws:SecureTransport": "false"}}
