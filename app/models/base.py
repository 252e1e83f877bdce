"""
Shared Pydantic base model

Attributes are snake_case in Python; JSON uses the camelCase keys the
dashboard front-end reads.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(CamelModel):
    """Immutable camelCase model for parser output"""
    model_config = ConfigDict(frozen=True)
