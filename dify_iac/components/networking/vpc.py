"""
VPC Component Resource for Network Infrastructure.

Three ways to get a network:
1. New VPC with NAT Gateway (default):
   - Public subnets (2 AZs): ALB, NAT Gateway.
   - Private subnets (2 AZs): Fargate tasks, Aurora, ElastiCache.
   - Private RT: 0.0.0.0/0 -> NAT Gateway (image pulls, LLM provider APIs).
2. New VPC with NAT Instance (cheaper):
   - Same layout, but a t4g.nano instance with source/dest check disabled
     masquerades private traffic instead of the managed NAT Gateway.
3. New isolated VPC:
   - Private subnets only, no Internet Gateway and no NAT.
   - AWS services are reached through VPC endpoints (S3 gateway + interface endpoints).
4. Imported VPC:
   - Nothing is created; subnets are looked up by VPC id and the
     map-public-ip-on-launch attribute.
"""

import base64
from dataclasses import dataclass

import pulumi
import pulumi_aws as aws

from dify_iac.configs.base import ImportedVpc, NewVpc
from dify_iac.configs.constants import (
    AVAILABILITY_ZONE_COUNT,
    ISOLATED_INTERFACE_ENDPOINTS,
    NAT_INSTANCE_TYPE,
    SUBNET_CIDRS,
    VPC_CIDR,
)
from dify_iac.utils.tags import create_tags

# Configures the instance to forward and masquerade traffic from the VPC
NAT_INSTANCE_USER_DATA = """#!/bin/bash
yum install -y iptables-services
systemctl enable --now iptables
sysctl -w net.ipv4.ip_forward=1
echo "net.ipv4.ip_forward = 1" > /etc/sysctl.d/99-nat.conf
IFACE=$(ip route | awk '/default/ {print $5; exit}')
iptables -t nat -A POSTROUTING -o "$IFACE" -j MASQUERADE
iptables -F FORWARD
service iptables save
"""


def _subnet_ids(subnets: list[aws.ec2.Subnet]) -> pulumi.Output[list[str]]:
    if not subnets:
        return pulumi.Output.from_input([])
    return pulumi.Output.all(*[subnet.id for subnet in subnets])


@dataclass
class VpcOutputs:
    """Output values from VPC component."""
    vpc_id: pulumi.Output[str]
    vpc_cidr: pulumi.Output[str]
    public_subnet_ids: pulumi.Output[list[str]]
    private_subnet_ids: pulumi.Output[list[str]]


class VpcComponent(pulumi.ComponentResource):
    """
    VPC component: creates or imports the network Dify runs in.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        network: NewVpc | ImportedVpc,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:networking:Vpc", name, None, opts)
        self.environment = environment
        self.network = network

        child_opts = pulumi.ResourceOptions(parent=self)

        if isinstance(network, ImportedVpc):
            self._import_vpc(network.vpc_id, child_opts)
        else:
            self._create_vpc(name, network, child_opts)

        self.register_outputs({
            "vpc_id": self.vpc_id,
            "public_subnet_ids": self.public_subnet_ids,
            "private_subnet_ids": self.private_subnet_ids,
        })

    def _import_vpc(self, vpc_id: str, opts: pulumi.ResourceOptions) -> None:
        """Look up an existing VPC and its subnets."""
        invoke_opts = pulumi.InvokeOptions(parent=self)
        existing = aws.ec2.get_vpc_output(id=vpc_id, opts=invoke_opts)

        def subnets(public: bool) -> pulumi.Output[list[str]]:
            return aws.ec2.get_subnets_output(
                filters=[
                    aws.ec2.GetSubnetsFilterArgs(name="vpc-id", values=[vpc_id]),
                    aws.ec2.GetSubnetsFilterArgs(
                        name="map-public-ip-on-launch",
                        values=["true" if public else "false"],
                    ),
                ],
                opts=invoke_opts,
            ).ids

        self.vpc_id = existing.id
        self.vpc_cidr = existing.cidr_block
        self.public_subnet_ids = subnets(public=True)
        self.private_subnet_ids = subnets(public=False)

    def _create_vpc(
        self,
        name: str,
        network: NewVpc,
        opts: pulumi.ResourceOptions,
    ) -> None:
        """Create VPC, subnets, routing and egress."""
        zones = aws.get_availability_zones(state="available").names[:AVAILABILITY_ZONE_COUNT]

        self.vpc = aws.ec2.Vpc(
            f"{name}-vpc",
            cidr_block=VPC_CIDR,
            enable_dns_hostnames=True,
            enable_dns_support=True,
            tags=create_tags(self.environment, f"{name}-vpc"),
            opts=opts,
        )

        self.private_subnets = [
            aws.ec2.Subnet(
                f"{name}-private-subnet-{index}",
                vpc_id=self.vpc.id,
                cidr_block=cidr,
                availability_zone=zone,
                tags=create_tags(self.environment, f"{name}-private-subnet-{index}"),
                opts=opts,
            )
            for index, (cidr, zone) in enumerate(zip(SUBNET_CIDRS["private"], zones))
        ]

        self.private_rt = aws.ec2.RouteTable(
            f"{name}-private-rt",
            vpc_id=self.vpc.id,
            tags=create_tags(self.environment, f"{name}-private-rt"),
            opts=opts,
        )
        for index, subnet in enumerate(self.private_subnets):
            aws.ec2.RouteTableAssociation(
                f"{name}-private-rt-assoc-{index}",
                subnet_id=subnet.id,
                route_table_id=self.private_rt.id,
                opts=opts,
            )

        self.public_subnets: list[aws.ec2.Subnet] = []
        if network.isolated:
            self._create_endpoints(name, opts)
        else:
            self._create_public_subnets(name, zones, opts)
            if network.use_nat_instance:
                self._create_nat_instance(name, opts)
            else:
                self._create_nat_gateway(name, opts)

        self.vpc_id = self.vpc.id
        self.vpc_cidr = self.vpc.cidr_block
        self.public_subnet_ids = _subnet_ids(self.public_subnets)
        self.private_subnet_ids = _subnet_ids(self.private_subnets)

    def _create_public_subnets(
        self,
        name: str,
        zones: list[str],
        opts: pulumi.ResourceOptions,
    ) -> None:
        self.igw = aws.ec2.InternetGateway(
            f"{name}-igw",
            vpc_id=self.vpc.id,
            tags=create_tags(self.environment, f"{name}-igw"),
            opts=opts,
        )

        public_rt = aws.ec2.RouteTable(
            f"{name}-public-rt",
            vpc_id=self.vpc.id,
            routes=[
                aws.ec2.RouteTableRouteArgs(
                    cidr_block="0.0.0.0/0",
                    gateway_id=self.igw.id,
                ),
            ],
            tags=create_tags(self.environment, f"{name}-public-rt"),
            opts=opts,
        )

        for index, (cidr, zone) in enumerate(zip(SUBNET_CIDRS["public"], zones)):
            subnet = aws.ec2.Subnet(
                f"{name}-public-subnet-{index}",
                vpc_id=self.vpc.id,
                cidr_block=cidr,
                availability_zone=zone,
                map_public_ip_on_launch=True,
                tags=create_tags(self.environment, f"{name}-public-subnet-{index}"),
                opts=opts,
            )
            aws.ec2.RouteTableAssociation(
                f"{name}-public-rt-assoc-{index}",
                subnet_id=subnet.id,
                route_table_id=public_rt.id,
                opts=opts,
            )
            self.public_subnets.append(subnet)

    def _create_nat_gateway(self, name: str, opts: pulumi.ResourceOptions) -> None:
        eip = aws.ec2.Eip(
            f"{name}-nat-eip",
            domain="vpc",
            tags=create_tags(self.environment, f"{name}-nat-eip"),
            opts=opts,
        )
        self.nat_gateway = aws.ec2.NatGateway(
            f"{name}-nat",
            allocation_id=eip.id,
            subnet_id=self.public_subnets[0].id,
            tags=create_tags(self.environment, f"{name}-nat"),
            opts=pulumi.ResourceOptions(parent=self, depends_on=[self.igw]),
        )
        aws.ec2.Route(
            f"{name}-private-default-route",
            route_table_id=self.private_rt.id,
            destination_cidr_block="0.0.0.0/0",
            nat_gateway_id=self.nat_gateway.id,
            opts=opts,
        )

    def _create_nat_instance(self, name: str, opts: pulumi.ResourceOptions) -> None:
        nat_sg = aws.ec2.SecurityGroup(
            f"{name}-nat-sg",
            description="NAT instance for private subnets",
            vpc_id=self.vpc.id,
            ingress=[
                aws.ec2.SecurityGroupIngressArgs(
                    protocol="-1",
                    from_port=0,
                    to_port=0,
                    cidr_blocks=[VPC_CIDR],
                ),
            ],
            egress=[
                aws.ec2.SecurityGroupEgressArgs(
                    protocol="-1",
                    from_port=0,
                    to_port=0,
                    cidr_blocks=["0.0.0.0/0"],
                ),
            ],
            tags=create_tags(self.environment, f"{name}-nat-sg"),
            opts=opts,
        )

        ami = aws.ec2.get_ami(
            most_recent=True,
            owners=["amazon"],
            filters=[
                aws.ec2.GetAmiFilterArgs(name="name", values=["al2023-ami-2023*-arm64"]),
            ],
        )

        self.nat_instance = aws.ec2.Instance(
            f"{name}-nat-instance",
            ami=ami.id,
            instance_type=NAT_INSTANCE_TYPE,
            subnet_id=self.public_subnets[0].id,
            vpc_security_group_ids=[nat_sg.id],
            source_dest_check=False,
            associate_public_ip_address=True,
            user_data_base64=base64.b64encode(NAT_INSTANCE_USER_DATA.encode()).decode(),
            tags=create_tags(self.environment, f"{name}-nat-instance"),
            opts=pulumi.ResourceOptions(parent=self, depends_on=[self.igw]),
        )
        aws.ec2.Route(
            f"{name}-private-default-route",
            route_table_id=self.private_rt.id,
            destination_cidr_block="0.0.0.0/0",
            network_interface_id=self.nat_instance.primary_network_interface_id,
            opts=opts,
        )

    def _create_endpoints(self, name: str, opts: pulumi.ResourceOptions) -> None:
        """Gateway and interface endpoints for a VPC without internet access."""
        region = aws.get_region().region

        endpoints_sg = aws.ec2.SecurityGroup(
            f"{name}-endpoints-sg",
            description="VPC interface endpoints",
            vpc_id=self.vpc.id,
            ingress=[
                aws.ec2.SecurityGroupIngressArgs(
                    protocol="tcp",
                    from_port=443,
                    to_port=443,
                    cidr_blocks=[VPC_CIDR],
                ),
            ],
            tags=create_tags(self.environment, f"{name}-endpoints-sg"),
            opts=opts,
        )

        # S3 Gateway Endpoint (image layers are served from S3)
        aws.ec2.VpcEndpoint(
            f"{name}-s3-endpoint",
            vpc_id=self.vpc.id,
            service_name=f"com.amazonaws.{region}.s3",
            vpc_endpoint_type="Gateway",
            route_table_ids=[self.private_rt.id],
            tags=create_tags(self.environment, f"{name}-s3-endpoint"),
            opts=opts,
        )

        for service in ISOLATED_INTERFACE_ENDPOINTS:
            endpoint_name = f"{name}-{service.replace('.', '-')}-endpoint"
            aws.ec2.VpcEndpoint(
                endpoint_name,
                vpc_id=self.vpc.id,
                service_name=f"com.amazonaws.{region}.{service}",
                vpc_endpoint_type="Interface",
                private_dns_enabled=True,
                subnet_ids=[subnet.id for subnet in self.private_subnets],
                security_group_ids=[endpoints_sg.id],
                tags=create_tags(self.environment, endpoint_name),
                opts=opts,
            )

    def get_outputs(self) -> VpcOutputs:
        """Get VPC output values."""
        return VpcOutputs(
            vpc_id=self.vpc_id,
            vpc_cidr=self.vpc_cidr,
            public_subnet_ids=self.public_subnet_ids,
            private_subnet_ids=self.private_subnet_ids,
        )
