"""
Servekit — Request Validation Rules
===================================

What:  Collects pydantic schemas for the path params, query string and body
       of a request.
Who:   Returned by `MasterController.validate()`; consumed by
       `MasterController.validate_payload()`.

Example:
    class LoginBody(BaseModel):
        email: str
        password: str = Field(min_length=8, max_length=20)

    class Paging(BaseModel):
        limit: int
        offset: int

    @classmethod
    def validate(cls):
        return (
            RequestBuilder()
            .add_to_body(LoginBody)
            .add_to_query(Paging)
        )
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Type

from pydantic import BaseModel


class PayloadType(str, Enum):
    """Which part of the request a schema applies to."""

    PARAMS = "params"
    QUERY = "query"
    BODY = "body"


@dataclass(frozen=True)
class Payload:
    type: PayloadType
    schema: Type[BaseModel]


class RequestBuilder:
    """Ordered list of validation rules. The add_* methods chain."""

    def __init__(self) -> None:
        self._payload: List[Payload] = []

    def _add(self, payload_type: PayloadType, schema: Type[BaseModel]) -> "RequestBuilder":
        if not (isinstance(schema, type) and issubclass(schema, BaseModel)):
            raise TypeError(
                f"Validation schema for {payload_type.value} must be a pydantic "
                f"BaseModel subclass, got {schema!r}"
            )
        self._payload.append(Payload(type=payload_type, schema=schema))
        return self

    def add_to_params(self, schema: Type[BaseModel]) -> "RequestBuilder":
        return self._add(PayloadType.PARAMS, schema)

    def add_to_query(self, schema: Type[BaseModel]) -> "RequestBuilder":
        return self._add(PayloadType.QUERY, schema)

    def add_to_body(self, schema: Type[BaseModel]) -> "RequestBuilder":
        return self._add(PayloadType.BODY, schema)

    @property
    def payload(self) -> List[Payload]:
        return list(self._payload)

    @property
    def get(self) -> List[Payload]:
        """Alias of `payload`; an empty list means nothing to validate."""
        return self.payload

    def schemas_for(self, payload_type: PayloadType) -> List[Type[BaseModel]]:
        return [p.schema for p in self._payload if p.type == payload_type]

    def __len__(self) -> int:
        return len(self._payload)

    def __repr__(self) -> str:
        rules = ", ".join(f"{p.type.value}={p.schema.__name__}" for p in self._payload)
        return f"<RequestBuilder({rules})>"
