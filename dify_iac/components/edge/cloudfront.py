"""
CloudFront CDN Component in front of the Dify ALB.

Architectural Strategy: "CloudFront-only origin"
1. The ALB stays internet-facing (CloudFront needs a public origin), but its
   security group only admits the CloudFront origin-facing managed prefix
   list. Nobody can bypass the distribution.
2. CloudFront terminates TLS (default certificate, or an ACM certificate for
   sub_domain.domain_name) and forwards everything to the ALB over HTTP.
3. Caching is disabled and all viewer headers, cookies and query strings are
   forwarded: Dify is a dynamic app with streaming responses.

us-east-1 resources:
- CloudFront only accepts ACM certificates and WAF web ACLs from us-east-1.
  They are created through a dedicated us-east-1 provider and named with
  the environment and sub-domain, so sibling deployments never collide.

IP restriction:
- With allowed CIDRs a WAF web ACL blocks everything except the IP sets.
"""

from dataclasses import dataclass

import pulumi
import pulumi_aws as aws

from dify_iac.configs.base import CloudFrontEdge, DomainSettings
from dify_iac.configs.constants import PORTS, RESOURCE_NAME_PREFIX
from dify_iac.utils.naming import ResourceNamer, build_resource_name
from dify_iac.utils.tags import create_tags

ORIGIN_FACING_PREFIX_LIST = "com.amazonaws.global.cloudfront.origin-facing"

# AWS managed policies
CACHING_DISABLED_POLICY_ID = "4135ea2d-6df8-44a3-9df3-4b5a84be39ad"
ALL_VIEWER_ORIGIN_REQUEST_POLICY_ID = "216adef6-5c7f-47e4-b989-5492eafa07d3"

WAF_NAME_MAX_LENGTH = 128


@dataclass
class CloudFrontOutputs:
    """Output values from CloudFront component."""
    distribution_id: pulumi.Output[str]
    distribution_domain: pulumi.Output[str]
    url: pulumi.Output[str]


class CloudFrontComponent(pulumi.ComponentResource):
    """
    CloudFront distribution serving Dify from a prefix-list-protected ALB.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        namer: ResourceNamer,
        edge: CloudFrontEdge,
        domain: DomainSettings,
        alb_dns_name: pulumi.Input[str],
        alb_security_group_id: pulumi.Input[str],
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:edge:CloudFront", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)
        self.environment = environment
        self.edge_suffix = namer.edge_suffix(edge.sub_domain)

        self.us_east_1 = aws.Provider(
            f"{name}-us-east-1",
            region="us-east-1",
            opts=child_opts,
        )
        us_east_1_opts = pulumi.ResourceOptions(parent=self, provider=self.us_east_1)

        # ALB accepts CloudFront only
        prefix_list = aws.ec2.get_managed_prefix_list_output(
            name=ORIGIN_FACING_PREFIX_LIST,
            opts=pulumi.InvokeOptions(parent=self),
        )
        aws.vpc.SecurityGroupIngressRule(
            f"{name}-alb-ingress-cloudfront",
            security_group_id=alb_security_group_id,
            ip_protocol="tcp",
            from_port=PORTS["http"],
            to_port=PORTS["http"],
            prefix_list_id=prefix_list.id,
            description="HTTP from CloudFront",
            opts=child_opts,
        )

        fqdn = domain.fqdn
        zone = None
        certificate_arn = None
        if fqdn:
            zone = aws.route53.get_zone_output(name=domain.domain_name, opts=pulumi.InvokeOptions(parent=self))
            certificate_arn = self._create_certificate(name, fqdn, zone, us_east_1_opts)

        web_acl_arn = None
        if edge.restricts_ip_addresses:
            web_acl_arn = self._create_web_acl(name, edge, us_east_1_opts)

        self.distribution = aws.cloudfront.Distribution(
            f"{name}-distribution",
            enabled=True,
            is_ipv6_enabled=True,
            comment=f"Dify ({self.edge_suffix})",
            price_class="PriceClass_All",
            http_version="http2and3",
            aliases=[fqdn] if fqdn else None,
            web_acl_id=web_acl_arn,
            origins=[
                aws.cloudfront.DistributionOriginArgs(
                    domain_name=alb_dns_name,
                    origin_id="alb",
                    custom_origin_config=aws.cloudfront.DistributionOriginCustomOriginConfigArgs(
                        http_port=PORTS["http"],
                        https_port=PORTS["https"],
                        origin_protocol_policy="http-only",
                        origin_ssl_protocols=["TLSv1.2"],
                        origin_read_timeout=60,
                    ),
                ),
            ],
            default_cache_behavior=aws.cloudfront.DistributionDefaultCacheBehaviorArgs(
                target_origin_id="alb",
                viewer_protocol_policy="redirect-to-https",
                allowed_methods=["GET", "HEAD", "OPTIONS", "PUT", "POST", "PATCH", "DELETE"],
                cached_methods=["GET", "HEAD"],
                cache_policy_id=CACHING_DISABLED_POLICY_ID,
                origin_request_policy_id=ALL_VIEWER_ORIGIN_REQUEST_POLICY_ID,
                compress=True,
            ),
            restrictions=aws.cloudfront.DistributionRestrictionsArgs(
                geo_restriction=aws.cloudfront.DistributionRestrictionsGeoRestrictionArgs(
                    restriction_type="none",
                ),
            ),
            viewer_certificate=aws.cloudfront.DistributionViewerCertificateArgs(
                acm_certificate_arn=certificate_arn,
                ssl_support_method="sni-only",
                minimum_protocol_version="TLSv1.2_2021",
            ) if certificate_arn is not None else aws.cloudfront.DistributionViewerCertificateArgs(
                cloudfront_default_certificate=True,
            ),
            tags=create_tags(environment, f"{name}-distribution"),
            opts=child_opts,
        )

        if fqdn and zone is not None:
            for record_type in ("A", "AAAA"):
                aws.route53.Record(
                    f"{name}-alias-{record_type.lower()}",
                    zone_id=zone.zone_id,
                    name=fqdn,
                    type=record_type,
                    aliases=[
                        aws.route53.RecordAliasArgs(
                            name=self.distribution.domain_name,
                            zone_id=self.distribution.hosted_zone_id,
                            evaluate_target_health=False,
                        ),
                    ],
                    opts=child_opts,
                )
            self.url = pulumi.Output.from_input(f"https://{fqdn}")
        else:
            self.url = self.distribution.domain_name.apply(lambda domain_name: f"https://{domain_name}")

        self.register_outputs({
            "distribution_id": self.distribution.id,
            "distribution_domain": self.distribution.domain_name,
            "url": self.url,
        })

    def _create_certificate(
        self,
        name: str,
        fqdn: str,
        zone: pulumi.Output,
        opts: pulumi.ResourceOptions,
    ) -> pulumi.Output[str]:
        """us-east-1 ACM certificate validated through Route 53."""
        certificate = aws.acm.Certificate(
            f"{name}-certificate",
            domain_name=fqdn,
            validation_method="DNS",
            tags=create_tags(self.environment, f"{name}-certificate-{self.edge_suffix}"),
            opts=opts,
        )

        validation_option = certificate.domain_validation_options[0]
        validation_record = aws.route53.Record(
            f"{name}-certificate-validation",
            zone_id=zone.zone_id,
            name=validation_option.resource_record_name,
            type=validation_option.resource_record_type,
            records=[validation_option.resource_record_value],
            ttl=60,
            allow_overwrite=True,
            opts=pulumi.ResourceOptions(parent=self),
        )

        validation = aws.acm.CertificateValidation(
            f"{name}-certificate-validation",
            certificate_arn=certificate.arn,
            validation_record_fqdns=[validation_record.fqdn],
            opts=opts,
        )
        return validation.certificate_arn

    def _create_web_acl(
        self,
        name: str,
        edge: CloudFrontEdge,
        opts: pulumi.ResourceOptions,
    ) -> pulumi.Output[str]:
        """WAF web ACL allowing only the configured IP ranges."""
        rules = []
        address_sets = [
            ("ipv4", "IPV4", edge.allowed_ipv4_cidrs),
            ("ipv6", "IPV6", edge.allowed_ipv6_cidrs),
        ]
        for label, version, cidrs in address_sets:
            if not cidrs:
                continue
            ip_set = aws.wafv2.IpSet(
                f"{name}-{label}-set",
                name=build_resource_name(
                    [RESOURCE_NAME_PREFIX, self.edge_suffix, label], WAF_NAME_MAX_LENGTH
                ),
                scope="CLOUDFRONT",
                ip_address_version=version,
                addresses=list(cidrs),
                tags=create_tags(self.environment, f"{name}-{label}-set"),
                opts=opts,
            )
            rules.append(aws.wafv2.WebAclRuleArgs(
                name=f"allow-{label}",
                priority=len(rules),
                action=aws.wafv2.WebAclRuleActionArgs(
                    allow=aws.wafv2.WebAclRuleActionAllowArgs(),
                ),
                statement=aws.wafv2.WebAclRuleStatementArgs(
                    ip_set_reference_statement=aws.wafv2.WebAclRuleStatementIpSetReferenceStatementArgs(
                        arn=ip_set.arn,
                    ),
                ),
                visibility_config=aws.wafv2.WebAclRuleVisibilityConfigArgs(
                    cloudwatch_metrics_enabled=True,
                    metric_name=f"allow-{label}",
                    sampled_requests_enabled=True,
                ),
            ))

        acl_name = build_resource_name([RESOURCE_NAME_PREFIX, self.edge_suffix, "acl"], WAF_NAME_MAX_LENGTH)
        web_acl = aws.wafv2.WebAcl(
            f"{name}-web-acl",
            name=acl_name,
            scope="CLOUDFRONT",
            default_action=aws.wafv2.WebAclDefaultActionArgs(
                block=aws.wafv2.WebAclDefaultActionBlockArgs(),
            ),
            rules=rules,
            visibility_config=aws.wafv2.WebAclVisibilityConfigArgs(
                cloudwatch_metrics_enabled=True,
                metric_name=acl_name,
                sampled_requests_enabled=True,
            ),
            tags=create_tags(self.environment, f"{name}-web-acl"),
            opts=opts,
        )
        return web_acl.arn

    def get_outputs(self) -> CloudFrontOutputs:
        """Get CloudFront output values."""
        return CloudFrontOutputs(
            distribution_id=self.distribution.id,
            distribution_domain=self.distribution.domain_name,
            url=self.url,
        )
