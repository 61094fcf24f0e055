"""
Edge components for public access.

Components:
- CloudFrontComponent: CloudFront distribution (optional WAF and custom domain)
"""

from dify_iac.components.edge.cloudfront import CloudFrontComponent, CloudFrontOutputs

__all__ = [
    "CloudFrontComponent",
    "CloudFrontOutputs",
]
