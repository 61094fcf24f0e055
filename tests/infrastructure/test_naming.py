"""
Tests for resource naming.

Validates:
1. Label sanitization (charset, separators, idempotence)
2. Length ceilings per resource type, never ending with '-'
3. Fallbacks for labels that sanitize to nothing
4. S3 bucket names stay within 3-63 characters
5. Account/region segments are omitted when unknown
"""

import re

import pytest

from dify_iac.configs.constants import NAME_MAX_LENGTHS
from dify_iac.utils.naming import (
    ResourceNamer,
    build_bucket_name,
    build_resource_name,
    sanitize,
)

LABELS = [
    "",
    "dev",
    "My-App!!",
    "!!!",
    "---",
    "Prod_EU  West",
    "a--b__c..d",
    "-leading-and-trailing-",
    "ÜNÏCÖDË-stage",
    "x" * 300,
    "staging-" * 40,
    "123456789012",
    "us-west-2",
]

MAX_LENGTHS = [1, 3, 5, 32, 40, 63, 255]

SANITIZED = re.compile(r"^([a-z0-9]+(-[a-z0-9]+)*)?$")
BUCKET_NAME = re.compile(r"^[a-z0-9][a-z0-9-]{1,61}[a-z0-9]$")


class TestSanitize:
    """Tests for label sanitization."""

    def test_mixed_case_and_punctuation(self):
        """Punctuation becomes single separators, trailing ones are stripped."""
        assert sanitize("My-App!!") == "my-app"

    def test_none_is_empty(self):
        """None sanitizes to an empty string."""
        assert sanitize(None) == ""

    def test_separator_runs_collapse(self):
        """Runs of disallowed characters collapse to one '-'."""
        assert sanitize("--a__b--") == "a-b"

    @pytest.mark.parametrize("label", LABELS)
    def test_output_shape(self, label):
        """Output is lowercase [a-z0-9-], no leading/trailing or doubled '-'."""
        assert SANITIZED.match(sanitize(label))

    @pytest.mark.parametrize("label", LABELS)
    def test_idempotent(self, label):
        """Sanitizing twice gives the same result."""
        assert sanitize(sanitize(label)) == sanitize(label)


class TestBuildResourceName:
    """Tests for bounded resource names."""

    @pytest.mark.parametrize("label", LABELS)
    @pytest.mark.parametrize("max_length", MAX_LENGTHS)
    def test_bounded_and_non_empty(self, label, max_length):
        """Names fit the ceiling, are non-empty and never end with '-'."""
        name = build_resource_name(["dify", label, "redis"], max_length)

        assert 0 < len(name) <= max_length
        assert not name.endswith("-")
        assert not name.startswith("-")

    def test_truncation_does_not_leave_separator(self):
        """A cut landing on '-' is re-stripped."""
        name = build_resource_name(["dify-" + "x" * 34 + "-y"], 40)

        assert name == "dify-" + "x" * 34

    def test_empty_parts_use_fallback(self):
        """All-punctuation parts fall back to the prefix."""
        assert build_resource_name(["!!!", "???"], 10) == "dify"

    def test_fallback_truncated(self):
        """The fallback respects tiny ceilings too."""
        assert build_resource_name(["!!!"], 3) == "dif"

    def test_no_parts(self):
        """No parts at all still yields a name."""
        assert build_resource_name([], 255) == "dify"

    def test_non_positive_max_length_raises(self):
        """A ceiling below 1 is a programming error."""
        with pytest.raises(ValueError):
            build_resource_name(["dify"], 0)


class TestBuildBucketName:
    """Tests for S3 bucket names."""

    @pytest.mark.parametrize("base", LABELS)
    @pytest.mark.parametrize("suffix", ["", "storage", "access-logs", "!!", "y" * 80])
    def test_valid_bucket_name(self, base, suffix):
        """Any input gives a 3-63 character [a-z0-9-] name."""
        name = build_bucket_name(base, suffix)

        assert 3 <= len(name) <= 63
        assert re.fullmatch(r"[a-z0-9-]+", name)
        assert not name.endswith("-")

    def test_short_name_padded(self):
        """Names under the S3 minimum are right-padded."""
        assert build_bucket_name("a", None) == "a00"

    def test_empty_name_padded(self):
        """Empty input still gives a valid name."""
        assert build_bucket_name("", "") == "000"

    def test_regular_name(self):
        """Base and suffix are joined with '-'."""
        assert build_bucket_name("dify-dev", "storage") == "dify-dev-storage"
        assert BUCKET_NAME.match(build_bucket_name("dify-dev", "storage"))


class TestResourceNamer:
    """Tests for the ResourceNamer naming context."""

    def test_environment_and_prefix(self):
        """The prefix is dify-<sanitized environment>."""
        namer = ResourceNamer("Dev")

        assert namer.environment == "dev"
        assert namer.prefix == "dify-dev"

    @pytest.mark.parametrize("label", ["", "!!!", "---"])
    def test_empty_label_falls_back(self, label):
        """Labels sanitizing to nothing become 'env'."""
        namer = ResourceNamer(label)

        assert namer.environment == "env"
        assert namer.prefix == "dify-env"

    def test_fixed_names(self):
        """Per-resource helpers follow dify-{environment}-{resource}."""
        namer = ResourceNamer("dev")

        assert namer.name("vpc") == "dify-dev-vpc"
        assert namer.cluster_name() == "dify-dev-cluster"
        assert namer.task_family("web") == "dify-dev-web"
        assert namer.service_name("api") == "dify-dev-api"
        assert namer.subnet_group_name("redis") == "dify-dev-redis-subnets"
        assert namer.replication_group_id() == "dify-dev-redis"
        assert namer.db_cluster_identifier() == "dify-dev-postgres"
        assert namer.load_balancer_name() == "dify-dev-alb"
        assert namer.target_group_name("plugin-daemon") == "dify-dev-plugin-daemon"

    def test_secret_and_parameter_paths(self):
        """Secrets and parameters use '/'-separated paths."""
        namer = ResourceNamer("dev")

        assert namer.secret_name("redis", "auth") == "dify-dev/redis/auth"
        assert namer.parameter_name("redis", "broker-url") == "/dify/dify-dev/redis/broker-url"

    def test_log_group_name(self):
        """Log groups live under /aws/ecs/."""
        assert ResourceNamer("dev").log_group_name("web") == "/aws/ecs/dify-dev-web"

    @pytest.mark.parametrize("label", LABELS)
    def test_ceilings_respected(self, label):
        """Every helper respects its resource-type ceiling."""
        namer = ResourceNamer(label)

        assert len(namer.replication_group_id()) <= NAME_MAX_LENGTHS["replication_group"]
        assert len(namer.db_cluster_identifier()) <= NAME_MAX_LENGTHS["db_cluster"]
        assert len(namer.load_balancer_name()) <= NAME_MAX_LENGTHS["load_balancer"]
        assert len(namer.target_group_name("plugin-daemon")) <= NAME_MAX_LENGTHS["target_group"]
        assert len(namer.cluster_name()) <= NAME_MAX_LENGTHS["ecs_cluster"]
        assert len(namer.log_group_name("web")) <= NAME_MAX_LENGTHS["log_group"]
        for name in (
            namer.replication_group_id(),
            namer.db_cluster_identifier(),
            namer.load_balancer_name(),
            namer.target_group_name("plugin-daemon"),
        ):
            assert not name.endswith("-")

    def test_long_environment_truncated(self):
        """Long environments are cut at the replication group ceiling."""
        namer = ResourceNamer("x" * 34 + "-y")

        assert namer.replication_group_id() == "dify-" + "x" * 34

    def test_bucket_name_with_account_and_region(self):
        """Known account and region are part of bucket names."""
        namer = ResourceNamer("dev", account="123456789012", region="us-west-2")

        assert namer.bucket_prefix == "dify-dev-123456789012-us-west-2"
        assert namer.bucket_name("storage") == "dify-dev-123456789012-us-west-2-storage"

    def test_bucket_name_unknown_account_and_region(self):
        """Unknown account and region are omitted."""
        assert ResourceNamer("dev").bucket_name("storage") == "dify-dev-storage"
        assert ResourceNamer("dev", region="eu-west-1").bucket_name("storage") == "dify-dev-eu-west-1-storage"

    def test_bucket_name_long_environment(self):
        """Bucket names are bounded even for very long environments."""
        namer = ResourceNamer("staging-" * 20, account="123456789012", region="ap-southeast-2")

        assert 3 <= len(namer.bucket_name("access-logs")) <= 63

    def test_edge_suffix(self):
        """Edge suffix combines environment and sub-domain."""
        namer = ResourceNamer("dev")

        assert namer.edge_suffix("dify") == "dev-dify"
        assert namer.edge_suffix("") == "dev"
        assert namer.edge_suffix(None) == "dev"
