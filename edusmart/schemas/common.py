from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from typing import Iterable, Type


class CamelModel(BaseModel):
    """snake_case fields, camelCase on the wire."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


def serialize(model: Type[BaseModel], row: dict) -> dict:
    return model.model_validate(row).model_dump(by_alias=True, mode="json")


def serialize_many(model: Type[BaseModel], rows: Iterable[dict]) -> list:
    return [serialize(model, row) for row in rows]


def to_row(payload: BaseModel, **extra) -> dict:
    """Request body -> column dict for Supabase (JSON-safe, unset fields dropped)."""
    data = payload.model_dump(mode="json", exclude_unset=True)
    data.update(extra)
    return data
