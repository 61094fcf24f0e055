"""
Security components for IAM.

Components:
- EcsTaskRolesComponent: Execution and task roles for an ECS service
"""

from dify_iac.components.security.task_roles import EcsTaskRolesComponent, EcsTaskRoleOutputs

__all__ = [
    "EcsTaskRolesComponent",
    "EcsTaskRoleOutputs",
]
