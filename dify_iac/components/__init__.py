"""
Pulumi component resources for Dify infrastructure.

Each submodule provides reusable ComponentResource classes:
- networking: VPC, subnets, security groups, VPC endpoints
- compute: ECS cluster, ALB, web and API services
- storage: S3 buckets, Aurora PostgreSQL, ElastiCache
- messaging: SES email
- edge: CloudFront, WAF
- security: ECS task and execution roles
"""
