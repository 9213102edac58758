"""
Policy Schemas

The policy attached to a routing rule is an ordered list of tagged steps:

    [
        {"type": "InjectDefaultParam", "name": "api-version",
         "value": "2024-10-21", "location": "query"},
        {"type": "SubstituteCredential", "method": "bearer"},
        {"type": "RateLimit", "calls": 100, "window_seconds": 60,
         "scope": "connection"}
    ]

Steps run in list order at request time. Each variant is a frozen model,
selected by its ``type`` discriminator.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from hubgate.config.constants import (
    CredentialMethod,
    ParamLocation,
    PolicyStepType,
    RateLimitScope,
)
from hubgate.config.settings import settings


class _Step(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=True)


class InjectDefaultParamStep(_Step):
    """Set a parameter only when the caller omitted it."""

    type: Literal["InjectDefaultParam"] = PolicyStepType.INJECT_DEFAULT_PARAM.value
    name: str = Field(..., min_length=1, max_length=100)
    value: str = Field(..., max_length=500)
    location: ParamLocation = ParamLocation.QUERY


class SubstituteCredentialStep(_Step):
    """Replace the caller credential with a gateway-minted backend credential."""

    type: Literal["SubstituteCredential"] = PolicyStepType.SUBSTITUTE_CREDENTIAL.value
    method: CredentialMethod = CredentialMethod.BEARER


class RateLimitStep(_Step):
    """Fixed-window quota, per connection or per gateway API."""

    type: Literal["RateLimit"] = PolicyStepType.RATE_LIMIT.value
    calls: int
    window_seconds: int
    scope: RateLimitScope = RateLimitScope.CONNECTION


PolicyStep = Annotated[
    Union[InjectDefaultParamStep, SubstituteCredentialStep, RateLimitStep],
    Field(discriminator="type"),
]

policy_adapter: TypeAdapter[list[PolicyStep]] = TypeAdapter(list[PolicyStep])


def default_policy() -> list[PolicyStep]:
    """Policy applied when a registration does not supply one."""
    return [
        InjectDefaultParamStep(
            name="api-version",
            value=settings.DEFAULT_API_VERSION,
            location=ParamLocation.QUERY,
        ),
        SubstituteCredentialStep(method=CredentialMethod.BEARER),
        RateLimitStep(
            calls=settings.DEFAULT_RATE_LIMIT_CALLS,
            window_seconds=settings.DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
            scope=RateLimitScope.CONNECTION,
        ),
    ]


def dump_policy(steps: list[PolicyStep]) -> list[dict]:
    """JSON-ready form of a policy, as stored on the routing rule."""
    return policy_adapter.dump_python(steps, mode="json")


def load_policy(data: list[dict]) -> list[PolicyStep]:
    """Parse a stored policy back into typed steps."""
    return policy_adapter.validate_python(data)
