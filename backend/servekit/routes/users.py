"""
Servekit — User Controllers
===========================

What:  Example REST resource built on MasterController.

Route inventory:
    POST /api/users            CreateUserController  (body: UserCreate)
    GET  /api/users            ListUsersController   (query: UserListQuery)
    GET  /api/users/{user_id}  GetUserController     (params: UserIdParams)

Every route takes the `use_db_session` middleware, so the request's session
is available as `all_data["db"]` and commits when the controller returns.
"""

import logging

from fastapi import APIRouter

from servekit.core import MasterController, RequestBuilder, ResponseBuilder
from servekit.database import use_db_session
from servekit.exceptions import ConflictError, NotFoundError
from servekit.repositories.user_repository import user_repository
from servekit.schemas.user import (
    UserCreate,
    UserIdParams,
    UserListQuery,
    UserListResponse,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Users"])


class CreateUserController(MasterController):
    """Register a new user. Emails are unique (case-insensitive)."""

    summary = "Create a user"

    @classmethod
    def validate(cls) -> RequestBuilder:
        return RequestBuilder().add_to_body(UserCreate)

    async def rest_controller(self, params, query, body, headers, all_data):
        db = all_data["db"]
        data = UserCreate.model_validate(body)

        # Checked up front for a clean 409; the unique index still guards races
        if await user_repository.find(db, email=data.email) is not None:
            raise ConflictError(message="A user with this email already exists", field="email")

        user = await user_repository.create(db, data.model_dump())
        return ResponseBuilder(201, UserResponse.model_validate(user), "User created")


class GetUserController(MasterController):
    """Fetch one user by ID."""

    summary = "Get a user"

    @classmethod
    def validate(cls) -> RequestBuilder:
        return RequestBuilder().add_to_params(UserIdParams)

    async def rest_controller(self, params, query, body, headers, all_data):
        user_id = UserIdParams.model_validate(params).user_id
        user = await user_repository.find(all_data["db"], id=user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return ResponseBuilder(200, UserResponse.model_validate(user), "Success")


class ListUsersController(MasterController):
    """Page through users, newest first, optionally filtered by email."""

    summary = "List users"

    @classmethod
    def validate(cls) -> RequestBuilder:
        return RequestBuilder().add_to_query(UserListQuery)

    async def rest_controller(self, params, query, body, headers, all_data):
        db = all_data["db"]
        page = UserListQuery.model_validate(query)
        filters = {"email": page.email} if page.email else {}

        users = await user_repository.list(db, limit=page.limit, offset=page.offset, **filters)
        total = await user_repository.count(db, **filters)

        return ResponseBuilder(
            200,
            UserListResponse(
                items=[UserResponse.model_validate(user) for user in users],
                total=total,
                limit=page.limit,
                offset=page.offset,
            ),
            "Success",
        )


CreateUserController.post(router, "/users", [use_db_session])
ListUsersController.get(router, "/users", [use_db_session])
GetUserController.get(router, "/users/{user_id}", [use_db_session])
