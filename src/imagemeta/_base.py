from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

__all__ = ["_FrozenModel"]


class _FrozenModel(BaseModel):
    """Base class for all immutable value types in imagemeta.

    Instances are frozen (assignment raises a `ValidationError`), hashable,
    and compare equal by field values.  Field names are snake_case in Python
    and camelCase when serialized.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        validate_by_name=True,
        serialize_by_alias=True,
        alias_generator=to_camel,
    )
