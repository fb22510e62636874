from __future__ import annotations

from pydantic import BaseModel, ConfigDict


def _to_camel(value: str) -> str:
    parts = value.split("_")
    return parts[0] + "".join(word.capitalize() for word in parts[1:])


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel)


class CamelORMModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel, from_attributes=True)


__all__ = ["CamelModel", "CamelORMModel"]
