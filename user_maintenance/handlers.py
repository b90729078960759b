"""Request dispatch and the per-route user maintenance handlers.

Every handler follows the same sequence: validate the input, cross-check
referenced records, mutate or read, then shape the response.  Handlers never
raise for expected failures; :func:`dispatch` turns anything unexpected into
a generic 500 so callers always receive a structured response.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .config import Settings, load_settings
from .database import Database
from .models import Err, UserRecord
from .responses import build_response, error_response
from .validation import (
    AddUserRequest,
    TeamKeywordQuery,
    UpdateUserRequest,
    UserIdPath,
    parse_json_body,
    validate,
)

logger = logging.getLogger("user_maintenance.handlers")

NO_SUCH_METHOD = "No Such Method"
INTERNAL_ERROR = "Internal Error Occured"
MISSING_USER_ID = "Missing userId Path Parameter"
MISSING_UPDATE_DATA = "Missing userId Path Parameters or User data"
MISSING_USER_DATA = "Requires User data"

Response = Dict[str, Any]


@dataclass(frozen=True)
class UserRequest:
    """Transport-neutral view of one inbound request."""

    method: str
    resource: str
    path_parameters: Optional[Mapping[str, Any]] = None
    query_parameters: Optional[Mapping[str, Any]] = None
    body: Optional[str] = None
    caller_id: Optional[Any] = None

    @classmethod
    def from_event(cls, event: Mapping[str, Any]) -> "UserRequest":
        """Build a request from an API-gateway style event."""

        request_context = event.get("requestContext") or {}
        authorizer = request_context.get("authorizer") or {}
        return cls(
            method=str(event.get("httpMethod") or ""),
            resource=str(event.get("resource") or ""),
            path_parameters=event.get("pathParameters"),
            query_parameters=event.get("queryStringParameters"),
            body=event.get("body"),
            caller_id=authorizer.get("userId"),
        )

    def require_caller_id(self) -> int:
        if self.caller_id is None:
            raise LookupError("Request has no authenticated caller")
        return int(self.caller_id)


Handler = Callable[[UserRequest, Database, Settings], Response]


def _iso_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def user_summary(user: UserRecord) -> Dict[str, Any]:
    return {
        "id": str(user.id),
        "firstName": user.first_name,
        "lastName": user.last_name,
        "status": user.status,
        "team": {"id": str(user.team_id), "value": user.team_name},
        "initials": user.initials,
        "createdBy": {"id": user.created_by_user_id, "name": user.created_by},
        "addedDate": _iso_timestamp(user.created_at),
    }


def user_detail(user: UserRecord) -> Dict[str, Any]:
    payload = user_summary(user)
    payload["email"] = user.email
    return payload


def handle_get_all_users(request: UserRequest, database: Database, settings: Settings) -> Response:
    team: Optional[str] = None
    if request.query_parameters is not None:
        query = validate(TeamKeywordQuery, dict(request.query_parameters), settings)
        if isinstance(query, Err):
            return error_response(query)
        team = query.value.team

    users = database.list_users(team)
    return build_response(200, [user_summary(user) for user in users])


def handle_get_user_details(request: UserRequest, database: Database, settings: Settings) -> Response:
    if not request.path_parameters:
        return build_response(400, {"message": MISSING_USER_ID})

    path = validate(UserIdPath, dict(request.path_parameters), settings)
    if isinstance(path, Err):
        return error_response(path)

    user = database.get_user_by_id(path.value.user_id)
    if isinstance(user, Err):
        return error_response(user, 404)

    return build_response(200, user_detail(user.value))


def handle_create_user(request: UserRequest, database: Database, settings: Settings) -> Response:
    if not request.body:
        return build_response(400, {"message": MISSING_USER_DATA})

    body = parse_json_body(request.body)
    if isinstance(body, Err):
        return error_response(body)
    payload = validate(AddUserRequest, body.value, settings)
    if isinstance(payload, Err):
        return error_response(payload)
    user_data = payload.value

    team = database.check_team_by_id(user_data.team_id)
    if isinstance(team, Err):
        logger.warning("Rejected user creation: team %s not found", user_data.team_id)
        return error_response(team, 404)

    existing = database.check_user_exists(user_data.email)
    if isinstance(existing, Err):
        logger.warning("Rejected user creation: duplicate email")
        return error_response(existing, 400)

    created_by = request.require_caller_id()
    user_id = database.create_user(
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        email=user_data.email,
        status=user_data.status,
        team_id=user_data.team_id,
        initials=user_data.initials or "",
        created_by_user_id=created_by,
    )
    logger.info("User %s created by user %s", user_id, created_by)

    return build_response(200, {"id": str(user_id), "message": "User created successfully"})


def handle_update_user(request: UserRequest, database: Database, settings: Settings) -> Response:
    if not request.path_parameters or request.body is None:
        return build_response(400, {"message": MISSING_UPDATE_DATA})

    path = validate(UserIdPath, dict(request.path_parameters), settings)
    if isinstance(path, Err):
        return error_response(path)
    body = parse_json_body(request.body)
    if isinstance(body, Err):
        return error_response(body)
    payload = validate(UpdateUserRequest, body.value, settings)
    if isinstance(payload, Err):
        return error_response(payload)
    user_id = path.value.user_id
    changes = payload.value

    team = database.check_team_by_id(changes.team_id)
    if isinstance(team, Err):
        logger.warning("Rejected update for user %s: team %s not found", user_id, changes.team_id)
        return error_response(team, 404)

    updated = database.update_user(user_id, team_id=changes.team_id, **changes.changes())
    if isinstance(updated, Err):
        return error_response(updated, 500)

    logger.info("User %s updated", user_id)
    return build_response(200, {"message": "User Updated Successfully"})


def handle_delete_user(request: UserRequest, database: Database, settings: Settings) -> Response:
    if not request.path_parameters:
        return build_response(400, {"message": MISSING_USER_ID})

    path = validate(UserIdPath, dict(request.path_parameters), settings)
    if isinstance(path, Err):
        return error_response(path)
    user_id = path.value.user_id

    user = database.get_user_by_id(user_id)
    if isinstance(user, Err):
        return error_response(user, 404)

    associated = database.check_user_association(user_id)
    if isinstance(associated, Err):
        logger.warning("Refusing to delete user %s: %s", user_id, associated.message)
        return error_response(associated, 400)

    # TODO: remove user_access rows once role-based authorization is introduced.
    database.delete_user_by_id(user_id)
    logger.info("User %s deleted", user_id)

    return build_response(200, {"message": "User Deleted Successfully"})


ROUTES: Dict[Tuple[str, str], Handler] = {
    ("/user", "GET"): handle_get_all_users,
    ("/user/create", "POST"): handle_create_user,
    ("/user/{userId}", "GET"): handle_get_user_details,
    ("/user/{userId}", "PUT"): handle_update_user,
    ("/user/{userId}", "DELETE"): handle_delete_user,
}


def dispatch(request: UserRequest, database: Database, settings: Settings) -> Response:
    """Route ``request`` to its handler; always returns a response."""

    try:
        logger.info("User maintenance invoked: %s %s", request.method, request.resource)
        handler = ROUTES.get((request.resource, request.method.upper()))
        if handler is None:
            logger.info("No handler for %s %s", request.method, request.resource)
            return build_response(404, {"message": NO_SUCH_METHOD})
        return handler(request, database, settings)
    except Exception:
        logger.exception("Error occurred while handling %s %s", request.method, request.resource)
        return build_response(500, {"message": INTERNAL_ERROR})


def lambda_handler(
    event: Mapping[str, Any],
    context: object = None,
    *,
    database: Database | None = None,
    settings: Settings | None = None,
) -> Response:
    """Entry point for API-gateway style events."""

    try:
        if settings is None:
            settings = load_settings()
        if database is None:
            database = Database.from_settings(settings)
            database.initialize()
        request = UserRequest.from_event(event)
    except Exception:
        logger.exception("Failed to prepare user maintenance request")
        return build_response(500, {"message": INTERNAL_ERROR})

    return dispatch(request, database, settings)


__all__ = [
    "ROUTES",
    "UserRequest",
    "dispatch",
    "handle_create_user",
    "handle_delete_user",
    "handle_get_all_users",
    "handle_get_user_details",
    "handle_update_user",
    "lambda_handler",
    "user_detail",
    "user_summary",
]
