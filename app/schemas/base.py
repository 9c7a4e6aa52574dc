from typing import Any
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Schema exposed with camelCase keys on the wire, snake_case in Python."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


def success_response(data: Any, message: str = "Success") -> dict:
    return {"success": True, "message": message, "data": data}
