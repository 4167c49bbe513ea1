"""In-memory user resource mounted by the service entry point."""
import itertools
import logging
from typing import Dict

from userapi.handler.router import Router
from userapi.protocol.request import HTTPRequest
from userapi.protocol.response import HTTPResponse

logger = logging.getLogger(__name__)


class UserResource:
    def __init__(self):
        self.users: Dict[int, dict] = {}
        self._ids = itertools.count(1)

    def register(self, router: Router) -> Router:
        return (
            router.get("/users", self.list_users)
            .post("/users", self.create_user)
            .get("/users/:id", self.get_user)
            .delete("/users/:id", self.delete_user)
        )

    def list_users(self, request: HTTPRequest, response: HTTPResponse):
        response.json(list(self.users.values()))

    def create_user(self, request: HTTPRequest, response: HTTPResponse):
        data = request.body
        if not isinstance(data, dict) or not data.get("name"):
            response.status(422).json({"error": "Field 'name' is required"})
            return
        user = {**data, "id": next(self._ids)}
        self.users[user["id"]] = user
        logger.info(f"Created user {user['id']}")
        response.status(201).json(user)

    def _find(self, request: HTTPRequest):
        user_id = request.path_params.get("id", "")
        if not user_id.isdigit():
            return None
        return self.users.get(int(user_id))

    def get_user(self, request: HTTPRequest, response: HTTPResponse):
        user = self._find(request)
        if user is None:
            response.status(404).json({"error": "User not found"})
            return
        response.json(user)

    def delete_user(self, request: HTTPRequest, response: HTTPResponse):
        user = self._find(request)
        if user is None:
            response.status(404).json({"error": "User not found"})
            return
        del self.users[user["id"]]
        response.status(204).end()
