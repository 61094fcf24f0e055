"""
Detailed tests for individual dify_iac components.

Validates:
1. Each component class has required attributes
2. Components are properly organized in packages
3. Component initialization parameters are correct
4. Output dataclasses have required fields
"""

import ast
import inspect
from pathlib import Path

import pytest


def _fields(outputs_cls) -> set[str]:
    return {f.name for f in outputs_cls.__dataclass_fields__.values()}


def _parameters(component_cls) -> list[str]:
    return list(inspect.signature(component_cls.__init__).parameters)


def _calls(module) -> list[ast.Call]:
    tree = ast.parse(Path(module.__file__).read_text())
    return [node for node in ast.walk(tree) if isinstance(node, ast.Call)]


class TestNetworkingComponents:
    """Tests for networking infrastructure components."""

    def test_vpc_component_attributes(self):
        """VpcComponent creates or imports a VPC."""
        from dify_iac.components.networking.vpc import VpcComponent

        assert hasattr(VpcComponent, "get_outputs")
        assert hasattr(VpcComponent, "_create_vpc")
        assert hasattr(VpcComponent, "_import_vpc")
        assert hasattr(VpcComponent, "_create_nat_instance")

    def test_vpc_outputs_have_subnets(self):
        """VpcOutputs should include both subnet tiers."""
        from dify_iac.components.networking.vpc import VpcOutputs

        assert {"vpc_id", "public_subnet_ids", "private_subnet_ids"}.issubset(_fields(VpcOutputs))

    def test_security_group_outputs(self):
        """One security group per tier."""
        from dify_iac.components.networking.security_groups import SecurityGroupOutputs

        assert _fields(SecurityGroupOutputs) == {"alb_sg_id", "service_sg_id", "database_sg_id", "cache_sg_id"}


class TestSecurityComponents:
    """Tests for security infrastructure components."""

    def test_task_roles_outputs(self):
        """Execution and task roles are both exported."""
        from dify_iac.components.security.task_roles import EcsTaskRoleOutputs

        assert _fields(EcsTaskRoleOutputs) == {"execution_role_arn", "task_role_arn"}

    def test_task_roles_parameters(self):
        """Task roles are created per service with referenced secrets."""
        from dify_iac.components.security.task_roles import EcsTaskRolesComponent

        params = _parameters(EcsTaskRolesComponent)
        assert "service" in params
        assert "secret_arns" in params
        assert "parameter_arns" in params


class TestStorageComponents:
    """Tests for storage infrastructure components."""

    def test_s3_outputs(self):
        """Storage and access log buckets are exported."""
        from dify_iac.components.storage.s3_buckets import S3BucketOutputs

        assert {"storage_bucket_name", "storage_bucket_arn", "access_log_bucket_name"}.issubset(
            _fields(S3BucketOutputs)
        )

    def test_postgres_outputs(self):
        """Aurora exposes its endpoint and managed secret."""
        from dify_iac.components.storage.postgres import PostgresOutputs

        assert _fields(PostgresOutputs) == {"endpoint", "port", "database_name", "secret_arn"}

    def test_redis_outputs(self):
        """ElastiCache exposes its endpoint, auth secret and broker URL parameter."""
        from dify_iac.components.storage.redis import RedisOutputs

        assert _fields(RedisOutputs) == {"endpoint", "port", "secret_arn", "broker_url_parameter_arn"}

    def test_both_buckets_encrypted_and_private(self):
        """Storage and access log buckets both get SSE and a public access block."""
        from dify_iac.components.storage import s3_buckets

        calls = _calls(s3_buckets)
        secured = {
            ast.unparse(call.args[1])
            for call in calls
            if ast.unparse(call.func) == "self._secure_bucket"
        }
        created = {ast.unparse(call.func) for call in calls}

        assert secured == {"self.access_log_bucket", "self.storage_bucket"}
        assert "aws.s3.BucketServerSideEncryptionConfiguration" in created
        assert "aws.s3.BucketPublicAccessBlock" in created

    @pytest.mark.parametrize("component_name", ["PostgresComponent", "RedisComponent"])
    def test_data_stores_take_settings(self, component_name):
        """Data stores are configured from normalized settings and a namer."""
        from dify_iac.components import storage

        params = _parameters(getattr(storage, component_name))
        assert {"namer", "settings", "subnet_ids", "security_group_id"}.issubset(params)


class TestMessagingComponents:
    """Tests for the SES email component."""

    def test_email_outputs(self):
        """SMTP settings are exported for the API containers."""
        from dify_iac.components.messaging.email import EmailOutputs

        assert _fields(EmailOutputs) == {"smtp_server", "smtp_port", "sender_address", "credentials_secret_arn"}


class TestComputeComponents:
    """Tests for compute infrastructure components."""

    def test_cluster_outputs(self):
        """The ECS cluster exports its ARN and name."""
        from dify_iac.components.compute.cluster import ClusterOutputs

        assert _fields(ClusterOutputs) == {"cluster_arn", "cluster_name"}

    def test_cluster_arn_waits_for_capacity_providers(self):
        """Services receive a cluster ARN that depends on the capacity providers."""
        from dify_iac.components.compute import cluster

        tree = ast.parse(Path(cluster.__file__).read_text())
        assignments = {
            ast.unparse(target): ast.unparse(node.value)
            for node in ast.walk(tree)
            if isinstance(node, ast.Assign)
            for target in node.targets
        }
        outputs = [
            keyword
            for call in _calls(cluster)
            if ast.unparse(call.func) == "ClusterOutputs"
            for keyword in call.keywords
            if keyword.arg == "cluster_arn"
        ]

        assert "self.capacity_providers" in assignments["self.cluster_arn"]
        assert [ast.unparse(keyword.value) for keyword in outputs] == ["self.cluster_arn"]

    def test_alb_parameters(self):
        """The ALB takes edge settings from the normalized config."""
        from dify_iac.components.compute.alb import AlbComponent

        params = _parameters(AlbComponent)
        assert {"internal", "domain", "allowed_ipv4_cidrs", "allowed_ipv6_cidrs"}.issubset(params)

    def test_alb_outputs(self):
        """The ALB exports the URL Dify is served on."""
        from dify_iac.components.compute.alb import AlbOutputs

        assert {"alb_dns_name", "listener_arn", "url"}.issubset(_fields(AlbOutputs))

    def test_add_target_parameters(self):
        """Targets register a port, health check and path patterns."""
        from dify_iac.components.compute.alb import AlbComponent

        params = list(inspect.signature(AlbComponent.add_target).parameters)
        assert params[1:] == ["role", "port", "health_check_path", "path_patterns", "priority"]

    @pytest.mark.parametrize("component_name", ["WebServiceComponent", "ApiServiceComponent"])
    def test_services_take_config(self, component_name):
        """Services read the normalized config and register with the ALB."""
        from dify_iac.components import compute

        params = _parameters(getattr(compute, component_name))
        assert {"config", "cluster_arn", "alb", "url"}.issubset(params)

    def test_api_service_takes_data_stores(self):
        """The API service is wired to Postgres, Redis and optional email."""
        from dify_iac.components.compute.api_service import ApiServiceComponent

        signature = inspect.signature(ApiServiceComponent.__init__)
        assert {"postgres", "redis", "email"}.issubset(signature.parameters)
        assert signature.parameters["email"].default is None

    def test_api_service_outputs(self):
        """The API service exports its generated keys secret."""
        from dify_iac.components.compute.api_service import ApiServiceOutputs

        assert "keys_secret_arn" in _fields(ApiServiceOutputs)

    def test_target_priorities_are_distinct(self):
        """Listener rule priorities never collide."""
        from dify_iac.components.compute.api_service import API_TARGET_PRIORITY, PLUGIN_DAEMON_TARGET_PRIORITY
        from dify_iac.components.compute.web_service import WEB_TARGET_PRIORITY

        priorities = [API_TARGET_PRIORITY, PLUGIN_DAEMON_TARGET_PRIORITY, WEB_TARGET_PRIORITY]
        assert len(set(priorities)) == 3
        # The catch-all web rule must be evaluated last
        assert WEB_TARGET_PRIORITY == max(priorities)


class TestEdgeComponents:
    """Tests for the CloudFront edge component."""

    def test_cloudfront_outputs(self):
        """CloudFront exports the distribution and URL."""
        from dify_iac.components.edge.cloudfront import CloudFrontOutputs

        assert _fields(CloudFrontOutputs) == {"distribution_id", "distribution_domain", "url"}

    def test_cloudfront_restricts_alb_ingress(self):
        """CloudFront is given the ALB security group to lock it down."""
        from dify_iac.components.edge.cloudfront import CloudFrontComponent

        assert "alb_security_group_id" in _parameters(CloudFrontComponent)


class TestComponentPackageStructure:
    """Tests for component package organization."""

    @pytest.mark.parametrize("package, names", [
        ("networking", ["VpcComponent", "SecurityGroupsComponent"]),
        ("security", ["EcsTaskRolesComponent"]),
        ("storage", ["S3BucketsComponent", "PostgresComponent", "RedisComponent"]),
        ("messaging", ["EmailComponent"]),
        ("compute", ["ClusterComponent", "AlbComponent", "WebServiceComponent", "ApiServiceComponent"]),
        ("edge", ["CloudFrontComponent"]),
    ])
    def test_package_exports(self, package, names):
        """Each package re-exports its components."""
        import importlib

        module = importlib.import_module(f"dify_iac.components.{package}")

        for name in names:
            assert name in module.__all__
            assert hasattr(module, name)
