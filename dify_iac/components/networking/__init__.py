"""
Networking components for VPC infrastructure.

Components:
- VpcComponent: New VPC (NAT gateway, NAT instance or isolated) or imported VPC
- SecurityGroupsComponent: Security groups for ALB, services, database and cache
"""

from dify_iac.components.networking.vpc import VpcComponent, VpcOutputs
from dify_iac.components.networking.security_groups import SecurityGroupsComponent, SecurityGroupOutputs

__all__ = [
    "VpcComponent",
    "VpcOutputs",
    "SecurityGroupsComponent",
    "SecurityGroupOutputs",
]
