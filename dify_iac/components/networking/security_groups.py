"""
Security Groups Component for Network Access Control.

Architectural Steps & Flow:
1. Create "Shell" Security Groups (ALB, Services, Database, Cache) without rules
   so they can reference each other by ID.

2. Define Rules (identity-based, not IP-based):
   - ALB -> Services: web (3000), api (5001), plugin daemon (5002).
   - Services -> Aurora PostgreSQL (5432).
   - Services -> ElastiCache (6379).
   - Services: all outbound (LLM provider APIs, image pulls, marketplace).

3. Who may reach the ALB is decided by the edge component (CloudFront prefix
   list or operator CIDRs), which adds its own ingress rules to alb_sg.
"""

from dataclasses import dataclass

import pulumi
import pulumi_aws as aws

from dify_iac.configs.constants import PORTS
from dify_iac.utils.tags import create_tags


@dataclass
class SecurityGroupOutputs:
    """Output values from security groups component."""
    alb_sg_id: pulumi.Output[str]
    service_sg_id: pulumi.Output[str]
    database_sg_id: pulumi.Output[str]
    cache_sg_id: pulumi.Output[str]


class SecurityGroupsComponent(pulumi.ComponentResource):
    """
    Security groups component for network access control.

    Implements least-privilege security group rules:
    - Services accept traffic only from the ALB
    - Database and cache accept connections only from services
    """

    def __init__(
        self,
        name: str,
        environment: str,
        vpc_id: pulumi.Input[str],
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:networking:SecurityGroups", name, None, opts)
        self.environment = environment

        child_opts = pulumi.ResourceOptions(parent=self)

        self.alb_sg = aws.ec2.SecurityGroup(
            f"{name}-alb-sg",
            description="Security group for Dify Application Load Balancer",
            vpc_id=vpc_id,
            tags=create_tags(environment, f"{name}-alb-sg"),
            opts=child_opts,
        )

        self.service_sg = aws.ec2.SecurityGroup(
            f"{name}-service-sg",
            description="Security group for Dify Fargate services",
            vpc_id=vpc_id,
            tags=create_tags(environment, f"{name}-service-sg"),
            opts=child_opts,
        )

        self.database_sg = aws.ec2.SecurityGroup(
            f"{name}-database-sg",
            description="Security group for Aurora PostgreSQL",
            vpc_id=vpc_id,
            tags=create_tags(environment, f"{name}-database-sg"),
            opts=child_opts,
        )

        self.cache_sg = aws.ec2.SecurityGroup(
            f"{name}-cache-sg",
            description="Security group for ElastiCache",
            vpc_id=vpc_id,
            tags=create_tags(environment, f"{name}-cache-sg"),
            opts=child_opts,
        )

        self._create_rules(name, child_opts)

        self.register_outputs({
            "alb_sg_id": self.alb_sg.id,
            "service_sg_id": self.service_sg.id,
            "database_sg_id": self.database_sg.id,
            "cache_sg_id": self.cache_sg.id,
        })

    def _create_rules(
        self,
        name: str,
        opts: pulumi.ResourceOptions,
    ) -> None:
        """Create security group rules."""
        for service in ("web", "api", "plugin_daemon"):
            port = PORTS[service]
            rule = service.replace("_", "-")

            aws.vpc.SecurityGroupIngressRule(
                f"{name}-service-ingress-{rule}",
                security_group_id=self.service_sg.id,
                ip_protocol="tcp",
                from_port=port,
                to_port=port,
                referenced_security_group_id=self.alb_sg.id,
                description=f"{rule} from ALB",
                opts=opts,
            )

            aws.vpc.SecurityGroupEgressRule(
                f"{name}-alb-egress-{rule}",
                security_group_id=self.alb_sg.id,
                ip_protocol="tcp",
                from_port=port,
                to_port=port,
                referenced_security_group_id=self.service_sg.id,
                description=f"{rule} to services",
                opts=opts,
            )

        aws.vpc.SecurityGroupEgressRule(
            f"{name}-service-egress-all",
            security_group_id=self.service_sg.id,
            ip_protocol="-1",
            cidr_ipv4="0.0.0.0/0",
            description="All outbound traffic",
            opts=opts,
        )

        aws.vpc.SecurityGroupIngressRule(
            f"{name}-database-ingress-services",
            security_group_id=self.database_sg.id,
            ip_protocol="tcp",
            from_port=PORTS["postgres"],
            to_port=PORTS["postgres"],
            referenced_security_group_id=self.service_sg.id,
            description="PostgreSQL from services",
            opts=opts,
        )

        aws.vpc.SecurityGroupIngressRule(
            f"{name}-cache-ingress-services",
            security_group_id=self.cache_sg.id,
            ip_protocol="tcp",
            from_port=PORTS["redis"],
            to_port=PORTS["redis"],
            referenced_security_group_id=self.service_sg.id,
            description="Redis from services",
            opts=opts,
        )

    def get_outputs(self) -> SecurityGroupOutputs:
        """Get security group output values."""
        return SecurityGroupOutputs(
            alb_sg_id=self.alb_sg.id,
            service_sg_id=self.service_sg.id,
            database_sg_id=self.database_sg.id,
            cache_sg_id=self.cache_sg.id,
        )
