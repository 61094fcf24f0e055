"""
IAM roles component for ECS Fargate tasks.

Creates, per service:
- Execution role: pulls images, writes logs, resolves ECS secrets
  (Secrets Manager secrets and SSM parameters referenced by the task)
- Task role: what the containers may call at runtime (S3 storage bucket,
  ECS Exec channels, Bedrock models)
"""

import json
from dataclasses import dataclass

import pulumi
import pulumi_aws as aws

from dify_iac.configs.constants import NAME_MAX_LENGTHS
from dify_iac.utils.naming import ResourceNamer
from dify_iac.utils.tags import create_tags

ECS_TASKS_ASSUME_POLICY = json.dumps({
    "Version": "2012-10-17",
    "Statement": [{
        "Effect": "Allow",
        "Principal": {"Service": "ecs-tasks.amazonaws.com"},
        "Action": "sts:AssumeRole",
    }],
})


def _secrets_policy(secret_arns: list[str], parameter_arns: list[str]) -> str:
    statements = [{
        "Effect": "Allow",
        "Action": ["secretsmanager:GetSecretValue", "secretsmanager:DescribeSecret"],
        "Resource": secret_arns,
    }]
    if parameter_arns:
        statements.append({
            "Effect": "Allow",
            "Action": ["ssm:GetParameters", "ssm:GetParameter"],
            "Resource": parameter_arns,
        })
    return json.dumps({"Version": "2012-10-17", "Statement": statements})


def _task_policy(bucket_arn: str) -> str:
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Action": [
                    "s3:GetObject",
                    "s3:PutObject",
                    "s3:DeleteObject",
                    "s3:ListBucket",
                ],
                "Resource": [bucket_arn, f"{bucket_arn}/*"],
            },
            {
                "Effect": "Allow",
                "Action": [
                    "ssmmessages:CreateControlChannel",
                    "ssmmessages:CreateDataChannel",
                    "ssmmessages:OpenControlChannel",
                    "ssmmessages:OpenDataChannel",
                ],
                "Resource": ["*"],
            },
            {
                "Effect": "Allow",
                "Action": [
                    "bedrock:InvokeModel",
                    "bedrock:InvokeModelWithResponseStream",
                    "bedrock:Rerank",
                    "bedrock:Retrieve",
                    "bedrock:RetrieveAndGenerate",
                ],
                "Resource": ["*"],
            },
        ],
    })


@dataclass
class EcsTaskRoleOutputs:
    """Output values from ECS task roles component."""
    execution_role_arn: pulumi.Output[str]
    task_role_arn: pulumi.Output[str]


class EcsTaskRolesComponent(pulumi.ComponentResource):
    """
    Execution and task roles for one ECS service.

    Follows least-privilege principle: the execution role may read only the
    secrets and parameters the task definition references.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        namer: ResourceNamer,
        service: str,
        storage_bucket_arn: pulumi.Input[str],
        secret_arns: list[pulumi.Input[str]],
        parameter_arns: list[pulumi.Input[str]] | None = None,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:security:EcsTaskRoles", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)
        role_length = NAME_MAX_LENGTHS["iam_role"]

        self.execution_role = aws.iam.Role(
            f"{name}-execution-role",
            name=namer.name(f"{service}-execution", role_length),
            assume_role_policy=ECS_TASKS_ASSUME_POLICY,
            tags=create_tags(environment, f"{name}-execution-role"),
            opts=child_opts,
        )

        aws.iam.RolePolicyAttachment(
            f"{name}-execution-managed",
            role=self.execution_role.name,
            policy_arn="arn:aws:iam::aws:policy/service-role/AmazonECSTaskExecutionRolePolicy",
            opts=child_opts,
        )

        if secret_arns:
            aws.iam.RolePolicy(
                f"{name}-execution-secrets",
                role=self.execution_role.id,
                policy=pulumi.Output.all(
                    pulumi.Output.all(*secret_arns),
                    pulumi.Output.all(*(parameter_arns or [])),
                ).apply(lambda args: _secrets_policy(list(args[0]), list(args[1]))),
                opts=child_opts,
            )

        self.task_role = aws.iam.Role(
            f"{name}-task-role",
            name=namer.name(f"{service}-task", role_length),
            assume_role_policy=ECS_TASKS_ASSUME_POLICY,
            tags=create_tags(environment, f"{name}-task-role"),
            opts=child_opts,
        )

        aws.iam.RolePolicy(
            f"{name}-task-policy",
            role=self.task_role.id,
            policy=pulumi.Output.from_input(storage_bucket_arn).apply(_task_policy),
            opts=child_opts,
        )

        self.register_outputs({
            "execution_role_arn": self.execution_role.arn,
            "task_role_arn": self.task_role.arn,
        })

    def get_outputs(self) -> EcsTaskRoleOutputs:
        """Get IAM role output values."""
        return EcsTaskRoleOutputs(
            execution_role_arn=self.execution_role.arn,
            task_role_arn=self.task_role.arn,
        )
