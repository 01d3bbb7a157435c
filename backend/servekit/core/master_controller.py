"""
Servekit — MasterController
===========================

What:  Base class for every REST endpoint and socket event.
How:   Subclass it, describe the expected payload in `validate()`, put the
       logic in `rest_controller()` (HTTP) or `socket_controller()` (socket
       event), then register the class on a router:

           class CreateUser(MasterController):
               @classmethod
               def validate(cls):
                   return RequestBuilder().add_to_body(UserCreate)

               async def rest_controller(self, params, query, body, headers, all_data):
                   user = await user_repository.create(all_data["db"], body)
                   return ResponseBuilder(201, UserResponse.model_validate(user), "User created")

           CreateUser.post(router, "/users", [use_db_session])

Request flow (one request = one controller instance):

    Router ─▶ dependencies (middlewares) ─▶ handler()
                                              │
                                              ├─ read params / query / body / headers
                                              ├─ validate_payload() ──▶ 400 envelope on errors
                                              └─ rest_controller()  ──▶ ResponseBuilder ─▶ JSON

Exceptions raised inside `rest_controller` are not caught here: they reach
the global exception handlers registered in main.py.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, AliasPath, BaseModel
from pydantic import ValidationError as PydanticValidationError

from servekit.core.request_builder import PayloadType, RequestBuilder
from servekit.core.response_builder import EnvelopeResponse, ResponseBuilder
from servekit.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Error listing keys, per payload part
ERROR_KEYS = {
    PayloadType.PARAMS: "param",
    PayloadType.QUERY: "query",
    PayloadType.BODY: "body",
}

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def format_validation_errors(exc: PydanticValidationError) -> List[str]:
    """One readable line per error: `"password" String should have at least 8 characters`."""
    messages = []
    for error in exc.errors():
        path = ".".join(str(part) for part in error["loc"])
        messages.append(f'"{path}" {error["msg"]}' if path else error["msg"])
    return messages


def _alias_keys(alias: Any) -> List[str]:
    # Top-level input keys an alias reads from
    if isinstance(alias, str):
        return [alias]
    if isinstance(alias, AliasPath):
        return [alias.path[0]] if alias.path and isinstance(alias.path[0], str) else []
    if isinstance(alias, AliasChoices):
        return [key for choice in alias.choices for key in _alias_keys(choice)]
    return []


def _known_keys(schema: type[BaseModel]) -> set:
    keys = set()
    for name, field in schema.model_fields.items():
        keys.add(name)
        if field.alias:
            keys.add(field.alias)
        keys.update(_alias_keys(field.validation_alias))
    return keys


def _strip_unknown(value: Any, schema: type[BaseModel]) -> Any:
    # Unknown keys are always allowed, even for models declared with extra="forbid"
    if isinstance(value, dict):
        known = _known_keys(schema)
        return {k: v for k, v in value.items() if k in known}
    return value


async def read_request_body(request: Request) -> Any:
    """
    Parse the request body into Python data.

    Empty body → {}. JSON (or no content type) → decoded JSON. Form
    encodings → dict of fields. Anything else → {}.

    Raises:
        ValidationError: Body claims to be JSON but cannot be decoded.
    """
    raw = await request.body()
    if not raw:
        return {}

    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type in FORM_CONTENT_TYPES:
        form = await request.form()
        return dict(form)
    if content_type and content_type != "application/json" and not content_type.endswith("+json"):
        return {}

    try:
        return json.loads(raw)
    except ValueError:
        raise ValidationError(errors={"body": ["Malformed JSON body"]})


class MasterController:
    """
    Base controller. Override `validate()` and `rest_controller()` or
    `socket_controller()`.

    Class attributes:
        summary: Short OpenAPI summary for the registered route
        tags:    OpenAPI tags for the registered route
    """

    summary: Optional[str] = None
    tags: Optional[List[str]] = None

    # ── Overridable hooks ─────────────────────────────────────────────────

    @classmethod
    def validate(cls) -> RequestBuilder:
        """Validation rules for this controller. Default: nothing to validate."""
        return RequestBuilder()

    async def rest_controller(
        self,
        params: Dict[str, Any],
        query: Dict[str, Any],
        body: Any,
        headers: Dict[str, str],
        all_data: Dict[str, Any],
    ) -> ResponseBuilder:
        """
        Handle a validated HTTP request.

        Args:
            params:   Path parameters
            query:    Query-string parameters
            body:     Decoded request body ({} when empty)
            headers:  Request headers (lower-case names)
            all_data: params, query, body and headers merged, plus everything
                      middlewares attached to `request.state`, plus `request`
        """
        logger.debug(
            "%s.rest_controller not overridden: params=%s query=%s body=%s",
            type(self).__name__, params, query, body,
        )
        return ResponseBuilder(200, None, "Success")

    async def socket_controller(
        self,
        socket: Any,
        data: Any,
        all_data: Dict[str, Any],
    ) -> ResponseBuilder:
        """Handle a validated socket event. The returned envelope is sent back to the sender."""
        logger.debug("%s.socket_controller not overridden: data=%s", type(self).__name__, data)
        return ResponseBuilder(200, None, "Success")

    # ── Validation ────────────────────────────────────────────────────────

    @staticmethod
    def validate_payload(
        params: Dict[str, Any],
        query: Dict[str, Any],
        body: Any,
        validation_rules: RequestBuilder,
    ) -> Optional[Dict[str, List[str]]]:
        """
        Run every rule against its payload part.

        All errors are collected (validation does not stop at the first one)
        and unknown keys are ignored.

        Returns:
            None when there are no rules or nothing failed, otherwise a dict
            with any of the keys `query`, `param`, `body`, each holding a
            non-empty list of messages.
        """
        if len(validation_rules.get) == 0:
            return None

        sources = {
            PayloadType.PARAMS: params,
            PayloadType.QUERY: query,
            PayloadType.BODY: body,
        }
        errors: Dict[str, List[str]] = {"query": [], "param": [], "body": []}

        for payload in validation_rules.payload:
            value = sources[payload.type]
            if value is None:
                value = {}
            try:
                payload.schema.model_validate(_strip_unknown(value, payload.schema))
            except PydanticValidationError as exc:
                errors[ERROR_KEYS[payload.type]].extend(format_validation_errors(exc))

        errors = {key: messages for key, messages in errors.items() if messages}
        return errors or None

    # ── Request handling ──────────────────────────────────────────────────

    @staticmethod
    def collect_all_data(
        request: Request,
        params: Dict[str, Any],
        query: Dict[str, Any],
        body: Any,
        headers: Dict[str, str],
    ) -> Dict[str, Any]:
        all_data: Dict[str, Any] = {}
        all_data.update(params)
        all_data.update(query)
        if isinstance(body, dict):
            all_data.update(body)
        all_data.update(headers)
        # Values set by middlewares, e.g. request.state.db
        all_data.update(getattr(request.state, "_state", {}))
        all_data["request"] = request
        return all_data

    @classmethod
    def handler(cls) -> Callable:
        """Build the route endpoint for this controller class."""

        async def endpoint(request: Request) -> JSONResponse:
            controller = cls()
            params = dict(request.path_params)
            query = dict(request.query_params)
            headers = dict(request.headers)

            try:
                body = await read_request_body(request)
            except ValidationError as exc:
                return ResponseBuilder.validation_error(exc.errors).to_json_response()

            all_data = cls.collect_all_data(request, params, query, body, headers)

            errors = cls.validate_payload(params, query, body, cls.validate())
            if errors:
                logger.info(
                    "%s %s rejected by %s: %s",
                    request.method, request.url.path, cls.__name__, errors,
                )
                return ResponseBuilder.validation_error(errors).to_json_response()

            result = await controller.rest_controller(params, query, body, headers, all_data)
            if not isinstance(result, ResponseBuilder):
                raise TypeError(
                    f"{cls.__name__}.rest_controller must return a ResponseBuilder, "
                    f"got {type(result).__name__}"
                )
            return result.to_json_response()

        endpoint.__name__ = f"{cls.__name__}_endpoint"
        endpoint.__doc__ = cls.__doc__
        return endpoint

    # ── Route registration ────────────────────────────────────────────────

    @classmethod
    def _register(
        cls,
        router: Any,
        method: str,
        path: str,
        middlewares: Optional[Sequence[Callable]],
    ) -> Any:
        router.add_api_route(
            path,
            cls.handler(),
            methods=[method],
            dependencies=[Depends(middleware) for middleware in (middlewares or [])],
            response_model=None,
            responses={
                200: {"model": EnvelopeResponse, "description": "Success envelope"},
                400: {"model": EnvelopeResponse, "description": "Validation Error"},
            },
            summary=cls.summary,
            tags=cls.tags,
            name=f"{cls.__name__}:{method.lower()}",
            openapi_extra=cls.openapi_extra() or None,
        )
        return router

    @classmethod
    def get(cls, router: Any, path: str, middlewares: Optional[Sequence[Callable]] = None) -> Any:
        """Register a GET route. `middlewares` are FastAPI dependencies run in order."""
        return cls._register(router, "GET", path, middlewares)

    @classmethod
    def post(cls, router: Any, path: str, middlewares: Optional[Sequence[Callable]] = None) -> Any:
        return cls._register(router, "POST", path, middlewares)

    @classmethod
    def put(cls, router: Any, path: str, middlewares: Optional[Sequence[Callable]] = None) -> Any:
        return cls._register(router, "PUT", path, middlewares)

    @classmethod
    def patch(cls, router: Any, path: str, middlewares: Optional[Sequence[Callable]] = None) -> Any:
        return cls._register(router, "PATCH", path, middlewares)

    @classmethod
    def delete(cls, router: Any, path: str, middlewares: Optional[Sequence[Callable]] = None) -> Any:
        return cls._register(router, "DELETE", path, middlewares)

    @classmethod
    def socket(cls, hub: Any, event: str, middlewares: Optional[Sequence[Callable]] = None) -> Any:
        """Register this controller for a socket event on a SocketEventHub."""
        return hub.on(event, cls, middlewares)

    # ── OpenAPI ───────────────────────────────────────────────────────────

    @classmethod
    def openapi_extra(cls) -> Dict[str, Any]:
        """Describe the validation schemas in the generated OpenAPI document."""
        rules = cls.validate()
        extra: Dict[str, Any] = {}

        parameters = []
        for schema in rules.schemas_for(PayloadType.PARAMS):
            parameters.extend(_schema_parameters(schema, "path"))
        for schema in rules.schemas_for(PayloadType.QUERY):
            parameters.extend(_schema_parameters(schema, "query"))
        if parameters:
            extra["parameters"] = parameters

        bodies = rules.schemas_for(PayloadType.BODY)
        if bodies:
            extra["requestBody"] = {
                "required": True,
                "content": {"application/json": {"schema": _inline_schema(bodies[0])}},
            }
        return extra


def _inline_schema(schema: type[BaseModel]) -> Dict[str, Any]:
    """JSON schema of a model with local `$defs` references expanded in place."""
    document = schema.model_json_schema()
    definitions = document.pop("$defs", {})

    def expand(node: Any, seen: frozenset) -> Any:
        if isinstance(node, dict):
            ref = node.get("$ref")
            if isinstance(ref, str) and ref.startswith("#/$defs/"):
                name = ref.rsplit("/", 1)[-1]
                if name in seen or name not in definitions:
                    return {"type": "object", "title": name}
                return expand(definitions[name], seen | {name})
            return {key: expand(value, seen) for key, value in node.items()}
        if isinstance(node, list):
            return [expand(item, seen) for item in node]
        return node

    return expand(document, frozenset())


def _schema_parameters(schema: type[BaseModel], location: str) -> List[Dict[str, Any]]:
    document = _inline_schema(schema)
    required = set(document.get("required", []))
    return [
        {
            "name": name,
            "in": location,
            "required": location == "path" or name in required,
            "schema": prop,
        }
        for name, prop in document.get("properties", {}).items()
    ]
