"""
Flask route handlers for the REST API.
"""

import os
import sys
import traceback
from datetime import datetime, timedelta

from flask import request, jsonify

from src.access import build_policy, load_actor
from src.api.auth import (
    cleanup_expired_sessions,
    close_session,
    generate_token,
    open_session,
    sessions,
    token_required,
)
from src.api.serializers import to_json
from src.config import FETCH_FAILED_MESSAGE, RESTRICTED_ACCESS_MESSAGE, TOKEN_EXPIRY_HOURS
from src.dashboard import (
    approve_request,
    build_dashboard,
    greeting,
    reject_request,
    update_appointment_status,
)
from src.database import check_connection
from src.errors import AuthenticationError, PortalError, QueryFailure
from src.records import get_history_detail, list_history_records


def _actor_json(actor):
    return {
        "id": actor.user_id,
        "display_name": actor.display_name,
        "role": actor.role,
        "person_id": actor.person_id,
        "person_ids": sorted(actor.person_ids),
        "clinician_id": actor.clinician_id,
    }


def _restricted_response(policy):
    return jsonify({
        "success": False,
        "error": "Acceso Restringido",
        "message": RESTRICTED_ACCESS_MESSAGE,
        "role": policy.role,
    }), 403


def register_routes(app, engine):
    """Register all API routes on the Flask *app*."""

    # ── Health / info ────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": "Clinical Records Portal API",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "auth": "/api/auth/login",
                "histories": "/api/histories",
                "dashboard": "/api/dashboard",
                "logout": "/api/auth/logout",
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        checks = {"database": check_connection(engine)}
        all_healthy = all(checks.values())
        return jsonify({
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
            "active_sessions": len(sessions),
        }), 200 if all_healthy else 503

    # ── Auth ─────────────────────────────────────────────────────────

    @app.route("/api/auth/login", methods=["POST"])
    def login():
        if not request.is_json:
            return jsonify({"error": "Content-Type must be application/json"}), 400

        data = request.json
        api_key = (data.get("api_key") or "").strip()
        if not api_key:
            return jsonify({"error": "api_key is required"}), 400

        cleanup_expired_sessions()
        try:
            actor = load_actor(engine, api_key)
            policy = build_policy(actor)
            token = generate_token(actor)
            open_session(token, actor, policy)
            print(f"[auth] {actor.display_name} signed in (role={actor.role})")

            return jsonify({
                "success": True,
                "token": token,
                "user": _actor_json(actor),
                "policy": {
                    "role": policy.role,
                    "notes": policy.notes,
                    "restricted": policy.restricted,
                },
                "expires_at": (datetime.utcnow() + timedelta(hours=TOKEN_EXPIRY_HOURS)).isoformat(),
            }), 200

        except (AuthenticationError, ValueError) as e:
            return jsonify({"error": f"Authentication failed: {str(e)}"}), 401
        except QueryFailure:
            raise
        except Exception as e:
            print(f"[ERROR] Login error: {e}", file=sys.stderr)
            traceback.print_exc()
            return jsonify({"error": "Internal server error during login"}), 500

    @app.route("/api/auth/logout", methods=["POST"])
    @token_required
    def logout():
        close_session(request.token)
        return jsonify({"success": True, "message": "Logged out successfully"}), 200

    @app.route("/api/user/profile", methods=["GET"])
    @token_required
    def get_profile():
        session = request.portal_session
        policy = session.policy
        return jsonify({
            "success": True,
            "user": _actor_json(session.actor),
            "policy": {
                "role": policy.role,
                "notes": policy.notes,
                "restricted": policy.restricted,
            },
            "session": {
                "created_at": session.created_at.isoformat(),
                "last_activity": session.last_activity.isoformat(),
            },
        }), 200

    # ── Clinical histories ───────────────────────────────────────────

    @app.route("/api/histories", methods=["GET"])
    @token_required
    def list_histories():
        policy = request.portal_session.policy
        if policy.restricted:
            return _restricted_response(policy)

        term = request.args.get("q", "").strip()
        records = list_history_records(engine, policy, term)
        return jsonify({
            "success": True,
            "count": len(records),
            "search": term or None,
            "records": to_json(records),
        }), 200

    @app.route("/api/histories/<int:history_id>", methods=["GET"])
    @token_required
    def history_detail(history_id):
        policy = request.portal_session.policy
        if policy.restricted:
            return _restricted_response(policy)

        detail = get_history_detail(engine, policy, history_id)
        return jsonify({"success": True, "history": to_json(detail)}), 200

    # ── Dashboard ────────────────────────────────────────────────────

    @app.route("/api/dashboard", methods=["GET"])
    @token_required
    def dashboard():
        actor = request.portal_session.actor
        policy = request.portal_session.policy
        now = datetime.now()
        content = build_dashboard(engine, policy, now)
        return jsonify({
            "success": True,
            "greeting": f"{greeting(now.hour)}, {actor.display_name}",
            "dashboard": to_json(content),
        }), 200

    @app.route("/api/requests/<int:request_id>/approve", methods=["POST"])
    @token_required
    def approve(request_id):
        approve_request(engine, request.portal_session.policy, request_id)
        return jsonify({"success": True, "request_id": request_id, "status": "Aprobada"}), 200

    @app.route("/api/requests/<int:request_id>/reject", methods=["POST"])
    @token_required
    def reject(request_id):
        reject_request(engine, request.portal_session.policy, request_id)
        return jsonify({"success": True, "request_id": request_id, "status": "Rechazada"}), 200

    @app.route("/api/appointments/<int:appointment_id>/status", methods=["POST"])
    @token_required
    def appointment_status(appointment_id):
        if not request.is_json:
            return jsonify({"error": "Content-Type must be application/json"}), 400
        status = (request.json.get("status") or "").strip()
        if not status:
            return jsonify({"error": "status is required"}), 400
        try:
            update_appointment_status(engine, request.portal_session.policy, appointment_id, status)
        except ValueError as e:
            return jsonify({"success": False, "error": str(e)}), 400
        return jsonify({"success": True, "appointment_id": appointment_id, "status": status}), 200

    @app.route("/api/sessions", methods=["GET"])
    def get_sessions_info():
        if os.getenv("FLASK_ENV") != "development":
            return jsonify({"error": "Not available in production"}), 403

        sessions_info = [session.describe() for session in sessions.values()]
        return jsonify({
            "active_sessions": len(sessions),
            "sessions": sessions_info,
        }), 200

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(QueryFailure)
    def query_failed(e):
        print(f"[ERROR] {e.message}: {e.cause}", file=sys.stderr)
        return jsonify({"success": False, "error": FETCH_FAILED_MESSAGE, "message": e.message}), e.status_code

    @app.errorhandler(PortalError)
    def portal_error(e):
        return jsonify({"success": False, "error": type(e).__name__, "message": e.message}), e.status_code

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found", "message": str(e)}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "message": str(e)}), 405

    @app.errorhandler(500)
    def internal_error(e):
        return jsonify({"error": "Internal server error", "message": str(e)}), 500
