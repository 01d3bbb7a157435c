"""
Servekit — MasterController HTTP Tests
======================================

Drives small throwaway apps through httpx to check request handling:
    ✅ success envelope and raw params/query/body/headers hand-off
    ✅ 400 validation envelope, controller not called
    ✅ malformed JSON and form bodies
    ✅ middleware data visible in all_data
    ✅ default rest_controller, method registration, OpenAPI output
    ✅ raised ServekitError → envelope via the global handlers
"""

import pytest
from fastapi import Request
from pydantic import BaseModel, Field

from servekit.core import MasterController, RequestBuilder, ResponseBuilder
from servekit.exceptions import NotFoundError


class ItemParams(BaseModel):
    item_id: int


class Paging(BaseModel):
    limit: int = Field(ge=1, le=100)


class ItemBody(BaseModel):
    name: str = Field(min_length=1)
    price: float = Field(gt=0)


class EchoController(MasterController):
    """Echo what the controller received."""

    calls = 0

    @classmethod
    def validate(cls) -> RequestBuilder:
        return (
            RequestBuilder()
            .add_to_params(ItemParams)
            .add_to_query(Paging)
            .add_to_body(ItemBody)
        )

    async def rest_controller(self, params, query, body, headers, all_data):
        type(self).calls += 1
        return ResponseBuilder(
            201,
            {
                "params": params,
                "query": query,
                "body": body,
                "header": headers.get("x-client"),
                "merged_name": all_data.get("name"),
                "marker": all_data.get("marker"),
                "has_request": "request" in all_data,
            },
            "Echoed",
        )


class MissingItemController(MasterController):

    async def rest_controller(self, params, query, body, headers, all_data):
        raise NotFoundError(resource="item", resource_id="42")


async def add_marker(request: Request):
    request.state.marker = "from-middleware"


@pytest.fixture(autouse=True)
def reset_calls():
    EchoController.calls = 0


class TestRestHandling:

    @pytest.mark.asyncio
    async def test_success_envelope_and_raw_inputs(self, build_app, client_for):
        app = build_app(lambda r: EchoController.post(r, "/items/{item_id}"))
        async with client_for(app) as client:
            response = await client.post(
                "/items/7?limit=10",
                json={"name": "lamp", "price": 9.5},
                headers={"X-Client": "tests"},
            )

        assert response.status_code == 201
        payload = response.json()
        assert payload["status"] == 201
        assert payload["message"] == "Echoed"
        assert payload["errors"] is None
        data = payload["data"]
        # Controllers get the request as sent, not the coerced models
        assert data["params"] == {"item_id": "7"}
        assert data["query"] == {"limit": "10"}
        assert data["body"] == {"name": "lamp", "price": 9.5}
        assert data["header"] == "tests"
        assert data["merged_name"] == "lamp"
        assert data["has_request"] is True

    @pytest.mark.asyncio
    async def test_validation_failure_returns_400_envelope(self, build_app, client_for):
        app = build_app(lambda r: EchoController.post(r, "/items/{item_id}"))
        async with client_for(app) as client:
            response = await client.post("/items/abc?limit=500", json={"price": -1})

        assert response.status_code == 400
        payload = response.json()
        assert payload["status"] == 400
        assert payload["message"] == "Validation Error"
        assert payload["data"] is None
        assert set(payload["errors"]) == {"param", "query", "body"}
        assert len(payload["errors"]["body"]) == 2
        assert EchoController.calls == 0

    @pytest.mark.asyncio
    async def test_malformed_json_is_a_body_error(self, build_app, client_for):
        app = build_app(lambda r: EchoController.post(r, "/items/{item_id}"))
        async with client_for(app) as client:
            response = await client.post(
                "/items/1?limit=1",
                content=b"{not json",
                headers={"Content-Type": "application/json"},
            )

        assert response.status_code == 400
        assert response.json()["errors"] == {"body": ["Malformed JSON body"]}
        assert EchoController.calls == 0

    @pytest.mark.asyncio
    async def test_form_body_is_parsed(self, build_app, client_for):
        app = build_app(lambda r: EchoController.post(r, "/items/{item_id}"))
        async with client_for(app) as client:
            response = await client.post(
                "/items/1?limit=1",
                data={"name": "desk", "price": "120"},
            )

        assert response.status_code == 201
        assert response.json()["data"]["body"] == {"name": "desk", "price": "120"}

    @pytest.mark.asyncio
    async def test_middleware_state_reaches_all_data(self, build_app, client_for):
        app = build_app(lambda r: EchoController.post(r, "/items/{item_id}", [add_marker]))
        async with client_for(app) as client:
            response = await client.post("/items/1?limit=1", json={"name": "a", "price": 1})

        assert response.json()["data"]["marker"] == "from-middleware"

    @pytest.mark.asyncio
    async def test_default_rest_controller(self, build_app, client_for):
        app = build_app(lambda r: MasterController.get(r, "/default"))
        async with client_for(app) as client:
            response = await client.get("/default")

        assert response.status_code == 200
        assert response.json() == {
            "status": 200,
            "message": "Success",
            "data": None,
            "errors": None,
        }

    @pytest.mark.asyncio
    async def test_raised_error_uses_envelope(self, build_app, client_for):
        app = build_app(lambda r: MissingItemController.get(r, "/missing"))
        async with client_for(app) as client:
            response = await client.get("/missing")

        assert response.status_code == 404
        payload = response.json()
        assert payload["status"] == 404
        assert payload["message"] == "item with ID '42' was not found"
        assert payload["data"] is None


class TestRegistration:

    def test_each_verb_registers_its_method(self, build_app):
        def register(router):
            MasterController.get(router, "/r")
            MasterController.post(router, "/r")
            MasterController.put(router, "/r")
            MasterController.patch(router, "/r")
            MasterController.delete(router, "/r")

        app = build_app(register)
        methods = set()
        for route in app.routes:
            if getattr(route, "path", None) == "/r":
                methods |= route.methods
        assert {"GET", "POST", "PUT", "PATCH", "DELETE"} <= methods

    def test_registration_returns_router(self, build_app):
        captured = {}

        def register(router):
            captured["returned"] = MasterController.get(router, "/x")
            captured["router"] = router

        build_app(register)
        assert captured["returned"] is captured["router"]

    def test_openapi_describes_schemas(self, build_app):
        app = build_app(lambda r: EchoController.post(r, "/items/{item_id}"))
        operation = app.openapi()["paths"]["/items/{item_id}"]["post"]

        params = {(p["name"], p["in"]): p for p in operation["parameters"]}
        assert params[("item_id", "path")]["required"] is True
        assert params[("limit", "query")]["required"] is True

        body_schema = operation["requestBody"]["content"]["application/json"]["schema"]
        assert set(body_schema["properties"]) == {"name", "price"}

    def test_openapi_documents_the_envelope(self, build_app):
        app = build_app(lambda r: EchoController.post(r, "/items/{item_id}"))
        document = app.openapi()
        responses = document["paths"]["/items/{item_id}"]["post"]["responses"]

        envelope_ref = "#/components/schemas/EnvelopeResponse"
        for status in ("200", "400"):
            assert responses[status]["content"]["application/json"]["schema"] == {"$ref": envelope_ref}
        assert set(document["components"]["schemas"]["EnvelopeResponse"]["properties"]) == {
            "status", "message", "data", "errors",
        }
