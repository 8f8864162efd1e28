# Overview: Request decorators that load the staff session and enforce actions.

import json
from functools import wraps

from flask import current_app, g, jsonify, request

from .errors import StorageError
from .services import authorization_gateway, permission_service
from .services.session_registry import IDLE_TIMEOUT_REASON, IdleState, get_registry


def _read_session_cookie():
    """Return (shop_id, staff_id) from the staff session cookie, or None."""
    raw = request.cookies.get(current_app.config.get("STAFF_SESSION_COOKIE", "pos_staff_session"))
    if not raw:
        return None
    try:
        data = json.loads(raw)
        return int(data["shop_id"]), int(data["staff_id"])
    except (ValueError, KeyError, TypeError):
        return None


def require_staff_session(f):
    """
    Require a clocked-in staff session for this terminal.

    Sets the following Flask g attributes:
    - g.staff_session: The ActorSession (role snapshot and overrides)
    - g.shop_id: The shop the staff member is clocked in at

    SECURITY: Returns 401 if:
    - No session cookie, or a malformed one
    - No active session for the (shop, staff) pair
    - The session passed its idle timeout (it is released here)
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        pair = _read_session_cookie()
        if pair is None:
            return jsonify({"error": "Staff session required"}), 401

        shop_id, staff_id = pair
        try:
            registry = get_registry()
            session = registry.get_active(shop_id, staff_id)
            if session is None:
                return jsonify({"error": "Please sign in again"}), 401

            if registry.idle_state(session) == IdleState.EXPIRED:
                registry.release(shop_id, staff_id, IDLE_TIMEOUT_REASON, device_id=session.device_id)
                return jsonify({"error": "Signed out after inactivity"}), 401

            registry.touch(shop_id, staff_id)
        except StorageError:
            current_app.logger.exception("Failed to load staff session")
            return jsonify({"error": "Session could not be loaded"}), 500

        g.staff_session = session
        g.shop_id = shop_id

        return f(*args, **kwargs)

    return decorated_function


def require_action(action_key: str):
    """Require the loaded staff session to hold `action_key`."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_staff_session was called first
            session = getattr(g, "staff_session", None)
            if session is None:
                return jsonify({"error": "Staff session required"}), 401

            if not authorization_gateway.authorize(session, action_key):
                permission_service.log_security_event(
                    session.staff_id,
                    "PERMISSION_DENIED",
                    False,
                    shop_id=session.shop_id,
                    resource=request.path,
                    action=action_key,
                    device_id=session.device_id,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": action_key,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
