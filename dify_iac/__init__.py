"""
Pulumi infrastructure-as-code for Dify on AWS.

This package defines AWS infrastructure including:
- VPC (new with NAT gateway/instance, isolated, or imported)
- ECS Fargate services for dify-web, dify-api, worker, sandbox and plugin daemon
- Aurora PostgreSQL Serverless v2 (metadata + pgvector)
- ElastiCache Valkey (cache + Celery broker)
- S3 buckets for uploaded files and ALB access logs
- ALB and optional CloudFront CDN with WAF IP allow-listing
- Optional SES email setup
"""
