"""
Application Load Balancer Component for Dify Traffic Distribution.

The 3-Resource Chain:
1. Load Balancer: Has a DNS name. Receives all incoming traffic.
   - internet-facing in public subnets, or internal in private subnets.
2. Listener: Binds to a PORT.
   - With a custom domain: HTTPS 443 (ACM certificate validated through
     Route 53) plus HTTP 80 redirecting to HTTPS.
   - Without: HTTP 80 only.
   - Requests matching no rule get a fixed 400 response.
3. Target Groups: one per service, registered through add_target() together
   with a path-based listener rule (e.g. /console/api/* -> api, /* -> web).

Who may reach the listener:
- allowed CIDRs become ingress rules on the ALB security group.
- In front of CloudFront the edge component adds the origin-facing prefix
  list instead and passes no CIDRs.
"""

from collections.abc import Sequence
from dataclasses import dataclass

import pulumi
import pulumi_aws as aws

from dify_iac.configs.base import DomainSettings
from dify_iac.configs.constants import PORTS
from dify_iac.utils.naming import ResourceNamer
from dify_iac.utils.tags import create_tags

# ALB rejects more than 5 values per path-pattern condition
MAX_PATH_PATTERNS_PER_RULE = 5


@dataclass
class AlbOutputs:
    """Output values from ALB component."""
    alb_arn: pulumi.Output[str]
    alb_dns_name: pulumi.Output[str]
    listener_arn: pulumi.Output[str]
    url: pulumi.Output[str]


class AlbComponent(pulumi.ComponentResource):
    """
    Application Load Balancer routing paths to Dify services.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        namer: ResourceNamer,
        vpc_id: pulumi.Input[str],
        subnet_ids: pulumi.Input[list[str]],
        security_group_id: pulumi.Input[str],
        internal: bool = False,
        domain: DomainSettings | None = None,
        access_log_bucket: pulumi.Input[str] | None = None,
        allowed_ipv4_cidrs: Sequence[str] = (),
        allowed_ipv6_cidrs: Sequence[str] = (),
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:compute:Alb", name, None, opts)

        self._name = name
        self.environment = environment
        self.namer = namer
        self.vpc_id = vpc_id
        self._rules: list[aws.lb.ListenerRule] = []

        child_opts = pulumi.ResourceOptions(parent=self)
        fqdn = domain.fqdn if domain is not None else None
        port = PORTS["https"] if fqdn else PORTS["http"]

        self.alb = aws.lb.LoadBalancer(
            f"{name}-alb",
            name=namer.load_balancer_name(),
            internal=internal,
            load_balancer_type="application",
            security_groups=[security_group_id],
            subnets=subnet_ids,
            enable_deletion_protection=False,
            access_logs=aws.lb.LoadBalancerAccessLogsArgs(
                bucket=access_log_bucket,
                prefix="alb",
                enabled=True,
            ) if access_log_bucket is not None else None,
            tags=create_tags(environment, f"{name}-alb"),
            opts=child_opts,
        )

        for index, cidr in enumerate(allowed_ipv4_cidrs):
            aws.vpc.SecurityGroupIngressRule(
                f"{name}-ingress-ipv4-{index}",
                security_group_id=security_group_id,
                ip_protocol="tcp",
                from_port=port,
                to_port=port,
                cidr_ipv4=cidr,
                description="Allowed IPv4 range",
                opts=child_opts,
            )
        for index, cidr in enumerate(allowed_ipv6_cidrs):
            aws.vpc.SecurityGroupIngressRule(
                f"{name}-ingress-ipv6-{index}",
                security_group_id=security_group_id,
                ip_protocol="tcp",
                from_port=port,
                to_port=port,
                cidr_ipv6=cidr,
                description="Allowed IPv6 range",
                opts=child_opts,
            )

        default_action = aws.lb.ListenerDefaultActionArgs(
            type="fixed-response",
            fixed_response=aws.lb.ListenerDefaultActionFixedResponseArgs(
                content_type="text/plain",
                message_body="invalid path",
                status_code="400",
            ),
        )

        if fqdn:
            certificate_arn = self._create_certificate(name, domain, fqdn, child_opts)
            self.listener = aws.lb.Listener(
                f"{name}-https-listener",
                load_balancer_arn=self.alb.arn,
                port=PORTS["https"],
                protocol="HTTPS",
                ssl_policy="ELBSecurityPolicy-TLS13-1-2-2021-06",
                certificate_arn=certificate_arn,
                default_actions=[default_action],
                tags=create_tags(environment, f"{name}-https-listener"),
                opts=child_opts,
            )
            aws.lb.Listener(
                f"{name}-http-redirect",
                load_balancer_arn=self.alb.arn,
                port=PORTS["http"],
                protocol="HTTP",
                default_actions=[
                    aws.lb.ListenerDefaultActionArgs(
                        type="redirect",
                        redirect=aws.lb.ListenerDefaultActionRedirectArgs(
                            port=str(PORTS["https"]),
                            protocol="HTTPS",
                            status_code="HTTP_301",
                        ),
                    ),
                ],
                tags=create_tags(environment, f"{name}-http-redirect"),
                opts=child_opts,
            )
            self.url = pulumi.Output.from_input(f"https://{fqdn}")
        else:
            self.listener = aws.lb.Listener(
                f"{name}-http-listener",
                load_balancer_arn=self.alb.arn,
                port=PORTS["http"],
                protocol="HTTP",
                default_actions=[default_action],
                tags=create_tags(environment, f"{name}-http-listener"),
                opts=child_opts,
            )
            self.url = self.alb.dns_name.apply(lambda dns: f"http://{dns}")

        self.register_outputs({
            "alb_arn": self.alb.arn,
            "alb_dns_name": self.alb.dns_name,
            "listener_arn": self.listener.arn,
            "url": self.url,
        })

    def _create_certificate(
        self,
        name: str,
        domain: DomainSettings,
        fqdn: str,
        opts: pulumi.ResourceOptions,
    ) -> pulumi.Output[str]:
        """ACM certificate validated through Route 53, plus the alias record."""
        zone = aws.route53.get_zone_output(name=domain.domain_name, opts=pulumi.InvokeOptions(parent=self))

        certificate = aws.acm.Certificate(
            f"{name}-certificate",
            domain_name=fqdn,
            validation_method="DNS",
            tags=create_tags(self.environment, f"{name}-certificate"),
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
            opts=opts,
        )

        validation = aws.acm.CertificateValidation(
            f"{name}-certificate-validation",
            certificate_arn=certificate.arn,
            validation_record_fqdns=[validation_record.fqdn],
            opts=opts,
        )

        aws.route53.Record(
            f"{name}-alias",
            zone_id=zone.zone_id,
            name=fqdn,
            type="A",
            aliases=[
                aws.route53.RecordAliasArgs(
                    name=self.alb.dns_name,
                    zone_id=self.alb.zone_id,
                    evaluate_target_health=True,
                ),
            ],
            opts=opts,
        )

        return validation.certificate_arn

    def add_target(
        self,
        role: str,
        port: int,
        health_check_path: str,
        path_patterns: Sequence[str],
        priority: int,
    ) -> aws.lb.TargetGroup:
        """
        Register an IP target group and route the given paths to it.

        Args:
            role: Service role used in resource names (e.g. 'web', 'api')
            port: Container port the targets listen on
            health_check_path: HTTP path the ALB health check requests
            path_patterns: Listener path patterns forwarded to the targets
            priority: Priority of the first listener rule (lower wins)

        Returns:
            The target group ECS services register with
        """
        child_opts = pulumi.ResourceOptions(parent=self)

        target_group = aws.lb.TargetGroup(
            f"{self._name}-{role}-tg",
            name=self.namer.target_group_name(role),
            port=port,
            protocol="HTTP",
            target_type="ip",
            vpc_id=self.vpc_id,
            deregistration_delay=30,
            health_check=aws.lb.TargetGroupHealthCheckArgs(
                enabled=True,
                path=health_check_path,
                port="traffic-port",
                protocol="HTTP",
                healthy_threshold=2,
                unhealthy_threshold=3,
                timeout=5,
                interval=20,
                matcher="200-299,307",
            ),
            tags=create_tags(self.environment, f"{self._name}-{role}-tg"),
            opts=child_opts,
        )

        patterns = list(path_patterns)
        for index in range(0, len(patterns), MAX_PATH_PATTERNS_PER_RULE):
            chunk = patterns[index:index + MAX_PATH_PATTERNS_PER_RULE]
            rule_index = index // MAX_PATH_PATTERNS_PER_RULE
            self._rules.append(aws.lb.ListenerRule(
                f"{self._name}-{role}-rule-{rule_index}",
                listener_arn=self.listener.arn,
                priority=priority + rule_index,
                actions=[
                    aws.lb.ListenerRuleActionArgs(
                        type="forward",
                        target_group_arn=target_group.arn,
                    ),
                ],
                conditions=[
                    aws.lb.ListenerRuleConditionArgs(
                        path_pattern=aws.lb.ListenerRuleConditionPathPatternArgs(values=chunk),
                    ),
                ],
                tags=create_tags(self.environment, f"{self._name}-{role}-rule-{rule_index}"),
                opts=child_opts,
            ))

        return target_group

    @property
    def rules(self) -> list[aws.lb.ListenerRule]:
        """Listener rules registered so far (services depend on them)."""
        return list(self._rules)

    def get_outputs(self) -> AlbOutputs:
        """Get ALB output values."""
        return AlbOutputs(
            alb_arn=self.alb.arn,
            alb_dns_name=self.alb.dns_name,
            listener_arn=self.listener.arn,
            url=self.url,
        )
