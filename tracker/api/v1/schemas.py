"""
Shared request/response base: camelCase on the wire, snake_case in Python.
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    message: str


def provided(req: BaseModel) -> dict:
    """Fields the client actually sent (PATCH semantics), by Python name"""
    return req.model_dump(exclude_unset=True)
