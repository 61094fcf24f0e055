"""
Storage components for Dify data and files.

Components:
- S3BucketsComponent: Storage bucket and ALB access-log bucket
- PostgresComponent: Aurora PostgreSQL Serverless v2 (metadata + pgvector)
- RedisComponent: ElastiCache Valkey (cache + Celery broker)
"""

from dify_iac.components.storage.s3_buckets import S3BucketsComponent, S3BucketOutputs
from dify_iac.components.storage.postgres import PostgresComponent, PostgresOutputs
from dify_iac.components.storage.redis import RedisComponent, RedisOutputs

__all__ = [
    "S3BucketsComponent",
    "S3BucketOutputs",
    "PostgresComponent",
    "PostgresOutputs",
    "RedisComponent",
    "RedisOutputs",
]
