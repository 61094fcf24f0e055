"""
S3 Buckets Component for Dify file storage and ALB access logs.

Two Buckets, Two Purposes:
1. Storage Bucket: Files uploaded to Dify (datasets, images, plugin packages).
   - Access: api/worker tasks via IAM (private, never public).
   - Features: Encryption (AES256), PublicAccessBlock, TLS-only bucket policy.

2. Access Log Bucket: ALB access logs.
   - Access: the regional ELB log-delivery principal writes objects.
   - Features: Encryption (AES256), PublicAccessBlock, ObjectWriter ownership
     (log delivery writes with its own ACL).

Bucket names carry environment, account and region so that independently
deployed environments in one account never collide. Both buckets are
force-destroyed together with the stack.
"""

import json
from dataclasses import dataclass

import pulumi
import pulumi_aws as aws

from dify_iac.utils.naming import ResourceNamer
from dify_iac.utils.tags import create_tags


@dataclass
class S3BucketOutputs:
    """Output values from S3 buckets component."""
    storage_bucket_name: pulumi.Output[str]
    storage_bucket_arn: pulumi.Output[str]
    access_log_bucket_name: pulumi.Output[str]
    access_log_bucket_arn: pulumi.Output[str]


def _tls_only_policy(bucket_arn: str) -> str:
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [{
            "Sid": "DenyInsecureTransport",
            "Effect": "Deny",
            "Principal": "*",
            "Action": "s3:*",
            "Resource": [bucket_arn, f"{bucket_arn}/*"],
            "Condition": {"Bool": {"aws:SecureTransport": "false"}},
        }],
    })


class S3BucketsComponent(pulumi.ComponentResource):
    """
    S3 buckets for Dify storage and ALB access logs.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        namer: ResourceNamer,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:storage:S3Buckets", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)

        # Access log bucket (ALB logs)
        self.access_log_bucket = aws.s3.Bucket(
            f"{name}-access-logs",
            bucket=namer.bucket_name("access-logs"),
            force_destroy=True,
            tags=create_tags(environment, f"{name}-access-logs"),
            opts=child_opts,
        )

        access_log_public_block = self._secure_bucket(f"{name}-access-logs", self.access_log_bucket, child_opts)

        aws.s3.BucketOwnershipControls(
            f"{name}-access-logs-ownership",
            bucket=self.access_log_bucket.id,
            rule=aws.s3.BucketOwnershipControlsRuleArgs(
                object_ownership="ObjectWriter",
            ),
            opts=child_opts,
        )

        elb_account = aws.elb.get_service_account()
        aws.s3.BucketPolicy(
            f"{name}-access-logs-policy",
            bucket=self.access_log_bucket.id,
            policy=self.access_log_bucket.arn.apply(lambda arn: json.dumps({
                "Version": "2012-10-17",
                "Statement": [
                    {
                        "Effect": "Allow",
                        "Principal": {"AWS": elb_account.arn},
                        "Action": "s3:PutObject",
                        "Resource": f"{arn}/*",
                    },
                    {
                        "Sid": "DenyInsecureTransport",
                        "Effect": "Deny",
                        "Principal": "*",
                        "Action": "s3:*",
                        "Resource": [arn, f"{arn}/*"],
                        "Condition": {"Bool": {"aws:SecureTransport": "false"}},
                    },
                ],
            })),
            opts=pulumi.ResourceOptions(parent=self, depends_on=[access_log_public_block]),
        )

        # Storage bucket (Dify uploads)
        self.storage_bucket = aws.s3.Bucket(
            f"{name}-storage",
            bucket=namer.bucket_name("storage"),
            force_destroy=True,
            tags=create_tags(environment, f"{name}-storage"),
            opts=child_opts,
        )

        storage_public_block = self._secure_bucket(f"{name}-storage", self.storage_bucket, child_opts)

        aws.s3.BucketPolicy(
            f"{name}-storage-policy",
            bucket=self.storage_bucket.id,
            policy=self.storage_bucket.arn.apply(_tls_only_policy),
            opts=pulumi.ResourceOptions(parent=self, depends_on=[storage_public_block]),
        )

        self.register_outputs({
            "storage_bucket_name": self.storage_bucket.bucket,
            "storage_bucket_arn": self.storage_bucket.arn,
            "access_log_bucket_name": self.access_log_bucket.bucket,
            "access_log_bucket_arn": self.access_log_bucket.arn,
        })

    def _secure_bucket(
        self,
        name: str,
        bucket: aws.s3.Bucket,
        opts: pulumi.ResourceOptions,
    ) -> aws.s3.BucketPublicAccessBlock:
        """Encrypt a bucket at rest and block every form of public access."""
        aws.s3.BucketServerSideEncryptionConfiguration(
            f"{name}-encryption",
            bucket=bucket.id,
            rules=[aws.s3.BucketServerSideEncryptionConfigurationRuleArgs(
                apply_server_side_encryption_by_default=aws.s3.BucketServerSideEncryptionConfigurationRuleApplyServerSideEncryptionByDefaultArgs(
                    sse_algorithm="AES256",
                ),
            )],
            opts=opts,
        )

        return aws.s3.BucketPublicAccessBlock(
            f"{name}-public-block",
            bucket=bucket.id,
            block_public_acls=True,
            block_public_policy=True,
            ignore_public_acls=True,
            restrict_public_buckets=True,
            opts=opts,
        )

    def get_outputs(self) -> S3BucketOutputs:
        """Get S3 bucket output values."""
        return S3BucketOutputs(
            storage_bucket_name=self.storage_bucket.bucket,
            storage_bucket_arn=self.storage_bucket.arn,
            access_log_bucket_name=self.access_log_bucket.bucket,
            access_log_bucket_arn=self.access_log_bucket.arn,
        )
