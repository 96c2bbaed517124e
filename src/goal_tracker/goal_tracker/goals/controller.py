from __future__ import annotations

import logging
from functools import wraps

from flask import Flask, g, jsonify, request, session

from ..common.validators import parse_optional_id
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ConflictError, DomainError, NotFoundError, ValidationError
from ..container import Container
from .model import Actor

logger = logging.getLogger(__name__)

_ERROR_STATUS = (
    (ValidationError, 400),
    (AuthorizationError, 401),
    (NotFoundError, 404),
    (ConflictError, 409),
)


def _error(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def _actor_from_session() -> Actor:
    """Identity is put in the session by the auth layer; we only read it."""

    if "user_id" not in session or "tenant_id" not in session:
        raise AuthorizationError("Authentication required")
    try:
        role = Role(session.get("role") or Role.EMPLOYEE.value)
    except ValueError:
        role = Role.EMPLOYEE
    try:
        user_id = int(session["user_id"])
        tenant_id = int(session["tenant_id"])
        department_id = session.get("department_id")
        department_id = int(department_id) if department_id is not None else None
    except (TypeError, ValueError):
        raise AuthorizationError("Invalid session")
    return Actor(user_id=user_id, tenant_id=tenant_id, role=role, department_id=department_id)


def register(app: Flask, container: Container) -> None:
    service = container.goal_service

    def api_view(view):
        """Resolve the actor and translate domain errors into JSON responses."""

        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                g.actor = _actor_from_session()
                return view(*args, **kwargs)
            except DomainError as e:
                for exc_type, status in _ERROR_STATUS:
                    if isinstance(e, exc_type):
                        return _error(str(e), status)
                return _error(str(e), 400)
            except Exception as e:
                logger.exception("Unhandled error in %s", request.path)
                if bool(app.config.get("DEBUG", False)):
                    return _error(f"Internal server error: {e}", 500)
                return _error("Internal server error", 500)

        return wrapper

    def _body() -> dict:
        data = request.get_json(silent=True)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data

    @app.route("/api/goals", methods=["GET"], endpoint="list_goals")
    @api_view
    def list_goals():
        result = service.list_goals(
            actor=g.actor,
            query=request.args,
            page=request.args.get("page"),
            limit=request.args.get("limit"),
        )
        return jsonify({"success": True, **result.to_dict()})

    @app.route("/api/goals/stats", methods=["GET"], endpoint="goal_stats")
    @api_view
    def goal_stats():
        stats = service.get_stats(tenant_id=g.actor.tenant_id, query=request.args)
        return jsonify({"success": True, "data": stats.to_dict()})

    @app.route("/api/goals/hierarchy", methods=["GET"], endpoint="goal_hierarchy")
    @api_view
    def goal_hierarchy():
        root_id = parse_optional_id(request.args.get("root_id"), "Root goal")
        tree = service.get_hierarchy(tenant_id=g.actor.tenant_id, root_id=root_id)
        return jsonify({"success": True, "data": [node.to_dict() for node in tree]})

    @app.route("/api/goals/<int:goal_id>", methods=["GET"], endpoint="get_goal")
    @api_view
    def get_goal(goal_id: int):
        detail = service.get_goal(tenant_id=g.actor.tenant_id, goal_id=goal_id)
        return jsonify({"success": True, "data": detail.to_dict()})

    @app.route("/api/goals", methods=["POST"], endpoint="create_goal")
    @api_view
    def create_goal():
        detail = service.create_goal(actor=g.actor, data=_body())
        return jsonify({"success": True, "data": detail.to_dict()}), 201

    @app.route("/api/goals/<int:goal_id>", methods=["PUT"], endpoint="update_goal")
    @api_view
    def update_goal(goal_id: int):
        detail = service.update_goal_fields(actor=g.actor, goal_id=goal_id, data=_body())
        return jsonify({"success": True, "data": detail.to_dict()})

    @app.route("/api/goals/<int:goal_id>/progress", methods=["PATCH"], endpoint="update_goal_progress")
    @api_view
    def update_goal_progress(goal_id: int):
        body = _body()
        detail = service.update_goal_progress(
            actor=g.actor,
            goal_id=goal_id,
            current_value=body.get("current_value"),
            note=body.get("note"),
        )
        return jsonify({"success": True, "data": detail.to_dict()})

    @app.route("/api/goals/<int:goal_id>", methods=["DELETE"], endpoint="delete_goal")
    @api_view
    def delete_goal(goal_id: int):
        service.delete_goal(actor=g.actor, goal_id=goal_id)
        return jsonify({"success": True, "message": "Goal deleted successfully"})

    @app.route("/api/goals/<int:goal_id>/key-results", methods=["POST"], endpoint="add_key_result")
    @api_view
    def add_key_result(goal_id: int):
        key_result = service.add_key_result(actor=g.actor, goal_id=goal_id, data=_body())
        return jsonify({"success": True, "data": key_result.to_dict()}), 201

    @app.route("/api/goals/<int:goal_id>/key-results/<int:kr_id>", methods=["PUT"], endpoint="update_key_result")
    @api_view
    def update_key_result(goal_id: int, kr_id: int):
        key_result = service.update_key_result(actor=g.actor, goal_id=goal_id, key_result_id=kr_id, data=_body())
        return jsonify({"success": True, "data": key_result.to_dict()})

    @app.route("/api/goals/<int:goal_id>/key-results/<int:kr_id>", methods=["DELETE"], endpoint="delete_key_result")
    @api_view
    def delete_key_result(goal_id: int, kr_id: int):
        service.delete_key_result(actor=g.actor, goal_id=goal_id, key_result_id=kr_id)
        return jsonify({"success": True, "message": "Key result deleted successfully"})
