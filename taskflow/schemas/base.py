from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel, to_snake


class CamelModel(BaseModel):
    """Schema serialized with camelCase keys, as the web client expects."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def from_wire(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Turn a camelCase request body into snake_case field names."""
    return {to_snake(key): value for key, value in payload.items()}
