"""
Pydantic schemas for structured stack configuration values.

Pulumi returns structured config (``Config.get_object``) as plain dicts and
lists; these models turn them into typed, immutable values.

Example stack config:

    dify-on-aws:additional_environment_variables:
      - key: OPENAI_API_BASE
        value: https://example.com/v1
        targets: [api, worker]
      - key: OPENAI_API_KEY
        value:
          secret_name: dify/openai
          field: api_key
      - key: HOSTED_ANTHROPIC_API_KEY
        value:
          parameter_name: /dify/anthropic-key
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ServiceTarget = Literal["web", "api", "worker", "sandbox", "plugin-daemon"]


class SecretReference(BaseModel):
    """Reference to a Secrets Manager secret (optionally a JSON field of it)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    secret_name: str = Field(min_length=1)
    field: str | None = None


class ParameterReference(BaseModel):
    """Reference to an SSM Parameter Store parameter."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    parameter_name: str = Field(min_length=1)


class AdditionalEnvironmentVariable(BaseModel):
    """Extra environment variable injected into one or more Dify services."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    key: str = Field(min_length=1)
    value: str | SecretReference | ParameterReference
    targets: tuple[ServiceTarget, ...] | None = None

    @property
    def is_secret(self) -> bool:
        return not isinstance(self.value, str)

    def applies_to(self, target: str) -> bool:
        """Check whether the variable is injected into the given service."""
        return self.targets is None or target in self.targets
