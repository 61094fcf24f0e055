"""
Operator-supplied environment variables for Dify containers.

Plain values become container `environment` entries. Secrets Manager and
SSM references become container `secrets` entries: ECS resolves them at task
start through the execution role, so the values never show up in the task
definition.

A Secrets Manager reference with a field resolves to
`<secret arn>:<field>::`, which makes ECS extract that JSON key.
"""

from collections.abc import Iterable

import pulumi
import pulumi_aws as aws

from dify_iac.configs.schemas import AdditionalEnvironmentVariable, ParameterReference, SecretReference


def plain_environment(
    target: str,
    variables: Iterable[AdditionalEnvironmentVariable],
) -> dict[str, str]:
    """Plain-text variables applying to a service, keyed by name."""
    return {
        variable.key: variable.value
        for variable in variables
        if variable.applies_to(target) and not variable.is_secret
    }


def secret_variables(
    target: str,
    variables: Iterable[AdditionalEnvironmentVariable],
) -> list[AdditionalEnvironmentVariable]:
    """Secret-backed variables applying to a service."""
    return [
        variable
        for variable in variables
        if variable.applies_to(target) and variable.is_secret
    ]


class ReferenceResolver:
    """
    Resolves secret and parameter references to ARNs.

    Each referenced secret or parameter is looked up once, however many
    variables and services refer to it.
    """

    def __init__(self, parent: pulumi.Resource | None = None) -> None:
        self._opts = pulumi.InvokeOptions(parent=parent)
        self._secret_arns: dict[str, pulumi.Output[str]] = {}
        self._parameter_arns: dict[str, pulumi.Output[str]] = {}

    def secret_arn(self, secret_name: str) -> pulumi.Output[str]:
        if secret_name not in self._secret_arns:
            self._secret_arns[secret_name] = aws.secretsmanager.get_secret_output(
                name=secret_name, opts=self._opts
            ).arn
        return self._secret_arns[secret_name]

    def parameter_arn(self, parameter_name: str) -> pulumi.Output[str]:
        if parameter_name not in self._parameter_arns:
            self._parameter_arns[parameter_name] = aws.ssm.get_parameter_output(
                name=parameter_name, opts=self._opts
            ).arn
        return self._parameter_arns[parameter_name]

    def value_from(self, reference: SecretReference | ParameterReference) -> pulumi.Output[str]:
        """ARN usable as `valueFrom` of an ECS container secret."""
        if isinstance(reference, ParameterReference):
            return self.parameter_arn(reference.parameter_name)
        arn = self.secret_arn(reference.secret_name)
        if reference.field:
            return arn.apply(lambda value: f"{value}:{reference.field}::")
        return arn

    def container_secrets(
        self,
        target: str,
        variables: Iterable[AdditionalEnvironmentVariable],
    ) -> list[dict[str, pulumi.Output[str] | str]]:
        """ECS `secrets` entries for the secret-backed variables of a service."""
        return [
            {"name": variable.key, "valueFrom": self.value_from(variable.value)}
            for variable in secret_variables(target, variables)
        ]

    def referenced_arns(
        self,
        variables: Iterable[AdditionalEnvironmentVariable],
    ) -> tuple[list[pulumi.Output[str]], list[pulumi.Output[str]]]:
        """Secret and parameter ARNs an execution role must be allowed to read."""
        secret_arns: list[pulumi.Output[str]] = []
        parameter_arns: list[pulumi.Output[str]] = []
        seen: set[str] = set()
        for variable in variables:
            reference = variable.value
            if isinstance(reference, SecretReference) and f"s:{reference.secret_name}" not in seen:
                seen.add(f"s:{reference.secret_name}")
                secret_arns.append(self.secret_arn(reference.secret_name))
            elif isinstance(reference, ParameterReference) and f"p:{reference.parameter_name}" not in seen:
                seen.add(f"p:{reference.parameter_name}")
                parameter_arns.append(self.parameter_arn(reference.parameter_name))
        return secret_arns, parameter_arns
