"""
Compute components for Dify on ECS Fargate.

Components:
- ClusterComponent: ECS cluster with Fargate / Fargate Spot capacity providers
- AlbComponent: Application Load Balancer with path-based routing
- WebServiceComponent: dify-web
- ApiServiceComponent: dify-api, worker, sandbox and plugin daemon
"""

from dify_iac.components.compute.cluster import ClusterComponent, ClusterOutputs
from dify_iac.components.compute.alb import AlbComponent, AlbOutputs
from dify_iac.components.compute.web_service import WebServiceComponent, WebServiceOutputs
from dify_iac.components.compute.api_service import ApiServiceComponent, ApiServiceOutputs

__all__ = [
    "ClusterComponent",
    "ClusterOutputs",
    "AlbComponent",
    "AlbOutputs",
    "WebServiceComponent",
    "WebServiceOutputs",
    "ApiServiceComponent",
    "ApiServiceOutputs",
]
