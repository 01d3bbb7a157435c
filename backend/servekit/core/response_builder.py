"""
Servekit — Response Envelope
============================

What:  The single JSON shape every endpoint and socket event answers with:

    {
        "status": 200,
        "message": "Success",
        "data": {...} | [...] | null,
        "errors": {"body": ["..."]} | null
    }

Why:   Clients parse one structure for success and failure alike; `status`
       in the body mirrors the HTTP status so socket replies carry it too.
"""

from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field


class EnvelopeResponse(BaseModel):
    """
    OpenAPI description of the envelope. MasterController routes declare it
    for their success and validation-failure responses.

    Example (validation failure):
        {
            "status": 400,
            "message": "Validation Error",
            "data": null,
            "errors": {"body": ["\\"password\\" String should have at least 8 characters"]}
        }
    """
    status: int = Field(description="HTTP status code, repeated in the body")
    message: str = Field(description="Human-readable outcome")
    data: Optional[Any] = Field(default=None, description="Payload; null on errors")
    errors: Optional[Dict[str, List[str]]] = Field(
        default=None,
        description="Error messages keyed by request part: param, query, body",
    )


class ResponseBuilder:
    """Value object returned by controller overrides."""

    def __init__(
        self,
        status: int = 200,
        data: Any = None,
        message: str = "Success",
        errors: Optional[Dict[str, List[str]]] = None,
    ):
        self.status = status
        self.data = data
        self.message = message
        self.errors = errors

    @property
    def response(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "message": self.message,
            "data": self.data,
            "errors": self.errors,
        }

    def to_json(self) -> Dict[str, Any]:
        """Envelope with `data` converted to JSON-compatible types."""
        return jsonable_encoder(self.response)

    def to_json_response(self, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
        return JSONResponse(status_code=self.status, content=self.to_json(), headers=headers)

    @classmethod
    def validation_error(cls, errors: Dict[str, List[str]]) -> "ResponseBuilder":
        return cls(status=400, data=None, message="Validation Error", errors=errors)

    @classmethod
    def error(
        cls,
        status: int,
        message: str,
        errors: Optional[Dict[str, List[str]]] = None,
    ) -> "ResponseBuilder":
        return cls(status=status, data=None, message=message, errors=errors)

    def __repr__(self) -> str:
        return f"<ResponseBuilder(status={self.status}, message='{self.message}')>"
