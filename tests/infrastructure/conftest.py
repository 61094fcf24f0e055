"""Pytest fixtures for infrastructure tests."""

import sys
from pathlib import Path

import pytest

# Make the dify_iac package importable without installing it
PROJECT_ROOT = Path(__file__).parent.parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from dify_iac.configs.base import EnvironmentProps  # noqa: E402
from dify_iac.configs.schemas import (  # noqa: E402
    AdditionalEnvironmentVariable,
    ParameterReference,
    SecretReference,
)


@pytest.fixture
def iac_project_root():
    """Return the dify_iac package directory."""
    return PROJECT_ROOT / "dify_iac"


@pytest.fixture
def python_files_in_iac(iac_project_root):
    """Return all Python files in the dify_iac package."""
    return [f for f in iac_project_root.rglob("*.py") if "__pycache__" not in str(f)]


@pytest.fixture
def additional_variables():
    """Plain, Secrets Manager and SSM variables with mixed targets."""
    return (
        AdditionalEnvironmentVariable(key="OPENAI_API_BASE", value="https://example.com/v1"),
        AdditionalEnvironmentVariable(key="LOG_FORMAT", value="json", targets=("web",)),
        AdditionalEnvironmentVariable(
            key="OPENAI_API_KEY",
            value=SecretReference(secret_name="dify/openai", field="api_key"),
            targets=("api", "worker"),
        ),
        AdditionalEnvironmentVariable(
            key="ANTHROPIC_API_KEY",
            value=ParameterReference(parameter_name="/dify/anthropic-key"),
        ),
    )


@pytest.fixture
def default_props():
    """Operator configuration with every setting left unset."""
    return EnvironmentProps()
