"""
Tests for configuration loading and normalization.

Validates:
1. Stack settings are parsed into EnvironmentProps (pydantic schemas)
2. Defaults are applied in one place
3. One variant is selected per optional subsystem
4. build_config validates before normalizing
"""

import logging

import pytest

from dify_iac.configs.base import (
    AlbEdge,
    CloudFrontEdge,
    CustomRepositoryImages,
    DomainSettings,
    EnvironmentProps,
    ImportedVpc,
    NewVpc,
    PublicRegistryImages,
    SesEmail,
)
from dify_iac.configs.environment import (
    parse_additional_environment_variables,
    props_from_mapping,
    resolve_region,
)
from dify_iac.configs.normalize import DifyConfig, build_config, normalize_props
from dify_iac.configs.schemas import ParameterReference, SecretReference
from dify_iac.configs.validation import InvalidSettingError, SubDomainWithoutDomainError


class TestAdditionalEnvironmentVariables:
    """Tests for the additional_environment_variables setting."""

    def test_none_is_empty(self):
        """An unset setting yields no variables."""
        assert parse_additional_environment_variables(None) == ()

    def test_value_kinds(self):
        """Plain strings, secret and parameter references are recognized."""
        variables = parse_additional_environment_variables([
            {"key": "PLAIN", "value": "x"},
            {"key": "SECRET", "value": {"secret_name": "dify/openai", "field": "api_key"}},
            {"key": "PARAM", "value": {"parameter_name": "/dify/key"}, "targets": ["api", "worker"]},
        ])

        assert variables[0].value == "x"
        assert variables[0].is_secret is False
        assert variables[1].value == SecretReference(secret_name="dify/openai", field="api_key")
        assert variables[1].is_secret is True
        assert variables[2].value == ParameterReference(parameter_name="/dify/key")
        assert variables[2].targets == ("api", "worker")

    def test_targets(self):
        """Variables without targets apply to every service."""
        plain, targeted = parse_additional_environment_variables([
            {"key": "A", "value": "1"},
            {"key": "B", "value": "2", "targets": ["web"]},
        ])

        assert plain.applies_to("sandbox")
        assert targeted.applies_to("web")
        assert not targeted.applies_to("api")

    @pytest.mark.parametrize("raw", [
        [{"key": "A", "value": "1", "targets": ["database"]}],
        [{"key": "A", "value": "1", "unknown": True}],
        [{"value": "1"}],
        [{"key": "A", "value": {"secret_name": ""}}],
        [{"key": "A", "value": {"bucket": "x"}}],
    ])
    def test_invalid_entries(self, raw):
        """Malformed entries raise InvalidSettingError."""
        with pytest.raises(InvalidSettingError):
            parse_additional_environment_variables(raw)


class TestPropsFromMapping:
    """Tests for building EnvironmentProps from stack settings."""

    def test_empty_mapping(self):
        """Missing settings stay unset."""
        assert props_from_mapping({}) == EnvironmentProps()

    def test_settings_are_copied(self):
        """Scalar, list and structured settings are converted."""
        props = props_from_mapping({
            "environment_name": "staging",
            "use_cloud_front": False,
            "domain_name": "example.com",
            "aurora_backup_retention_days": "7",
            "allowed_ipv4_cidrs": ["10.0.0.0/8"],
            "additional_environment_variables": [{"key": "A", "value": "1"}],
        })

        assert props.environment_name == "staging"
        assert props.use_cloud_front is False
        assert props.domain_name == "example.com"
        assert props.aurora_backup_retention_days == 7
        assert props.allowed_ipv4_cidrs == ("10.0.0.0/8",)
        assert props.allowed_ipv6_cidrs is None
        assert props.additional_environment_variables[0].key == "A"

    def test_invalid_cidr_list(self):
        """CIDR settings must be lists of strings."""
        with pytest.raises(InvalidSettingError):
            props_from_mapping({"allowed_ipv4_cidrs": [{"cidr": "10.0.0.0/8"}]})


class TestResolveRegion:
    """Tests for the region used in resource names."""

    @pytest.mark.parametrize("configured", [None, "", "us-west-2"])
    def test_provider_region(self, configured):
        """Unset or matching settings resolve to the provider region."""
        assert resolve_region(configured, "us-west-2") == "us-west-2"

    def test_mismatch_uses_provider_region(self, caplog):
        """Resources are created in aws:region, so names use it too."""
        with caplog.at_level(logging.WARNING, logger="dify_iac.configs.environment"):
            region = resolve_region("eu-west-1", "us-west-2")

        assert region == "us-west-2"
        assert "eu-west-1" in caplog.text


class TestNormalize:
    """Tests for default application and variant selection."""

    def test_defaults(self, default_props):
        """Unset settings resolve to the documented defaults."""
        config = normalize_props(default_props)

        assert isinstance(config, DifyConfig)
        assert config.environment == "dev"
        assert config.namer.prefix == "dify-dev"
        assert config.network == NewVpc(use_nat_instance=False, isolated=False)
        assert config.edge == CloudFrontEdge(sub_domain="dify")
        assert config.uses_cloud_front is True
        assert config.email is None
        assert isinstance(config.images, PublicRegistryImages)
        assert config.images.tags.dify == "latest"
        assert config.images.tags.sandbox == "latest"
        assert config.images.tags.plugin_daemon == "main-local"
        assert config.capacity.weights == {"FARGATE": 1, "FARGATE_SPOT": 0}
        assert config.database.backup_retention_days == 1
        assert config.database.scales_to_zero is False
        assert config.cache.multi_az is True
        assert config.domain == DomainSettings(domain_name=None, sub_domain="dify")
        assert config.domain.fqdn is None
        assert config.allow_any_syscalls is False

    def test_empty_environment_name(self):
        """An explicitly empty environment name falls back to 'env'."""
        config = normalize_props(EnvironmentProps(environment_name=""))

        assert config.environment == "env"
        assert config.namer.prefix == "dify-env"

    def test_imported_vpc(self):
        """vpc_id selects the imported VPC variant."""
        config = normalize_props(EnvironmentProps(vpc_id="vpc-0abc123"))

        assert config.network == ImportedVpc(vpc_id="vpc-0abc123")

    def test_nat_instance_and_isolated(self):
        """NAT instance and isolated flags carry into NewVpc."""
        config = normalize_props(EnvironmentProps(use_nat_instance=True, vpc_isolated=True))

        assert config.network == NewVpc(use_nat_instance=True, isolated=True)

    def test_alb_edge(self):
        """Without CloudFront the ALB serves traffic, open to the world by default."""
        config = normalize_props(EnvironmentProps(use_cloud_front=False, internal_alb=True))

        assert config.edge == AlbEdge(internal=True, sub_domain="dify", allowed_ipv4_cidrs=("0.0.0.0/0",))
        assert config.uses_cloud_front is False

    def test_alb_edge_with_cidrs(self):
        """Configured CIDRs replace the open default."""
        config = normalize_props(EnvironmentProps(
            use_cloud_front=False,
            allowed_ipv4_cidrs=("203.0.113.0/24",),
            allowed_ipv6_cidrs=("2001:db8::/32",),
        ))

        assert config.edge.allowed_ipv4_cidrs == ("203.0.113.0/24",)
        assert config.edge.allowed_ipv6_cidrs == ("2001:db8::/32",)

    def test_cloud_front_ip_restriction(self):
        """CIDRs on a CloudFront edge turn on the WAF allow-list."""
        config = normalize_props(EnvironmentProps(allowed_ipv4_cidrs=("203.0.113.0/24",)))

        assert isinstance(config.edge, CloudFrontEdge)
        assert config.edge.restricts_ip_addresses is True
        assert normalize_props(EnvironmentProps()).edge.restricts_ip_addresses is False

    def test_custom_repository(self):
        """custom_ecr_repository_name selects ECR images."""
        config = normalize_props(EnvironmentProps(
            custom_ecr_repository_name="dify-images",
            dify_image_tag="1.4.0",
        ))

        assert isinstance(config.images, CustomRepositoryImages)
        assert config.images.repository_name == "dify-images"
        assert config.images.tags.dify == "1.4.0"

    def test_email_and_domain(self):
        """setup_email with a domain selects SES; fqdn joins sub-domain and domain."""
        config = normalize_props(EnvironmentProps(domain_name="example.com", setup_email=True))

        assert config.email == SesEmail(domain_name="example.com")
        assert config.domain.fqdn == "dify.example.com"

    def test_empty_sub_domain_is_apex(self):
        """An empty sub_domain serves Dify on the apex domain."""
        config = normalize_props(EnvironmentProps(domain_name="example.com", sub_domain=""))

        assert config.domain.fqdn == "example.com"

    def test_fargate_spot(self):
        """use_fargate_spot moves all weight to FARGATE_SPOT."""
        config = normalize_props(EnvironmentProps(use_fargate_spot=True))

        assert config.capacity.weights == {"FARGATE": 0, "FARGATE_SPOT": 1}

    def test_database_and_cache_settings(self):
        """Aurora and ElastiCache settings are carried over."""
        config = normalize_props(EnvironmentProps(
            enable_aurora_scales_to_zero=True,
            aurora_backup_retention_days=14,
            is_redis_multi_az=False,
        ))

        assert config.database.scales_to_zero is True
        assert config.database.backup_retention_days == 14
        assert config.cache.multi_az is False

    def test_explicit_account_and_region_win(self):
        """Arguments override account and region from the settings."""
        props = EnvironmentProps(aws_account="111111111111", aws_region="eu-west-1")

        config = normalize_props(props, account="222222222222", region="us-east-2")

        assert config.namer.account == "222222222222"
        assert config.namer.region == "us-east-2"

    def test_account_and_region_from_settings(self):
        """Settings are used when no argument is given."""
        config = normalize_props(EnvironmentProps(aws_account="111111111111", aws_region="eu-west-1"))

        assert config.namer.bucket_name("storage") == "dify-dev-111111111111-eu-west-1-storage"


class TestBuildConfig:
    """Tests for the validate-then-normalize pipeline."""

    def test_advisories_are_carried(self):
        """Advisories raised during validation end up on the config."""
        config = build_config(EnvironmentProps(use_cloud_front=False))

        assert [advisory.code for advisory in config.advisories] == ["alb-without-encryption"]

    def test_conflict_raises_before_normalizing(self):
        """A conflict is not masked by the sub_domain default."""
        with pytest.raises(SubDomainWithoutDomainError):
            build_config(EnvironmentProps(sub_domain="app"))

    def test_valid_config(self):
        """A valid configuration normalizes with the given account and region."""
        config = build_config(EnvironmentProps(environment_name="prod"), account="123456789012", region="us-west-2")

        assert config.environment == "prod"
        assert config.advisories == ()
        assert config.namer.bucket_name("storage") == "dify-prod-123456789012-us-west-2-storage"
