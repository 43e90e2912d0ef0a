"""
Flask route handlers for the REST API.
"""

import sys
import traceback

from flask import request, jsonify

from rxalerts.config import ALERTS_PER_PAGE, REPORT_PERIODS
from rxalerts.report import alert_rows, build_expiry_report
from rxalerts.api.auth import token_required


def parse_notification_id(raw: str):
    """Path segments that look like integers are matched as integer ids."""
    raw = raw.strip()
    if raw.lstrip("-").isdigit():
        return int(raw)
    return raw


def _int_arg(name: str, default: int) -> int:
    value = request.args.get(name)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer")


def _counts(center) -> dict:
    lists = center.visible_lists
    return {
        "unread_count": center.unread_count,
        "expired_count": len(lists.expired),
        "low_stock_count": len(lists.low_stock),
        "expiring_soon_count": len(lists.expiring_soon),
    }


def register_routes(app, registry, storage_ok=None):
    """Register all API routes on the Flask *app*."""

    def current_center():
        return registry.open(request.identity, request.token)

    # ── Health / info ────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": "Pharmacy Notifications API",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "count": "/api/notifications/count",
                "notifications": "/api/notifications",
                "seen": "/api/notifications/seen",
                "dismiss": "/api/notifications/<id>",
                "refresh": "/api/notifications/refresh",
                "alerts": "/api/expiry/alerts",
                "report": "/api/expiry/report",
                "logout": "/api/auth/logout",
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        checks = {"storage": storage_ok() if storage_ok else True}
        all_healthy = all(checks.values())
        return jsonify({
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
            "active_identities": len(registry),
        }), 200 if all_healthy else 503

    # ── Notifications ────────────────────────────────────────────────

    @app.route("/api/notifications/count", methods=["GET"])
    @token_required
    def notification_count():
        center = current_center()
        return jsonify({"unread_count": center.unread_count, "stale": center.stale}), 200

    @app.route("/api/notifications", methods=["GET"])
    @token_required
    def list_notifications():
        center = current_center()
        response = {"success": True}
        response.update(_counts(center))
        response.update({
            "notifications": center.visible_lists.to_dict(),
            "last_refreshed": center.last_refreshed.isoformat() if center.last_refreshed else None,
            "stale": center.stale,
            "error": center.last_error,
        })
        return jsonify(response), 200

    @app.route("/api/notifications/seen", methods=["POST"])
    @token_required
    def mark_seen():
        center = current_center()
        center.mark_visited_seen()
        return jsonify({"success": True, "unread_count": center.unread_count}), 200

    @app.route("/api/notifications/<notif_id>", methods=["DELETE"])
    @token_required
    def dismiss_notification(notif_id):
        center = current_center()
        center.dismiss(parse_notification_id(notif_id))
        response = {"success": True}
        response.update(_counts(center))
        return jsonify(response), 200

    @app.route("/api/notifications/refresh", methods=["POST"])
    @token_required
    def refresh_notifications():
        center = current_center()
        applied = center.refresh()
        response = {"success": applied, "error": center.last_error}
        response.update(_counts(center))
        return jsonify(response), 200

    # ── Expiry views ─────────────────────────────────────────────────

    @app.route("/api/expiry/alerts", methods=["GET"])
    @token_required
    def expiry_alerts():
        try:
            page = _int_arg("page", 1)
            per_page = _int_arg("per_page", ALERTS_PER_PAGE)
            if per_page < 1:
                raise ValueError("per_page must be positive")
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        center = current_center()
        result = alert_rows(center.visible_lists.expiring_soon, center.now(), page, per_page)
        result["success"] = True
        return jsonify(result), 200

    @app.route("/api/expiry/report", methods=["GET"])
    @token_required
    def expiry_report():
        time_period = request.args.get("time_period") or None
        if time_period is not None and time_period not in REPORT_PERIODS:
            return jsonify({
                "error": f"Unknown time_period '{time_period}'",
                "allowed": sorted(REPORT_PERIODS),
            }), 400
        try:
            limit = _int_arg("limit", 100)
            offset = _int_arg("offset", 0)
            if limit < 0 or offset < 0:
                raise ValueError("limit and offset must not be negative")
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        center = current_center()
        try:
            report = build_expiry_report(
                center.medicines, center.now(),
                time_period=time_period,
                category=request.args.get("category") or None,
                limit=limit, offset=offset,
            )
        except Exception as e:
            print(f"[ERROR] Report generation error: {e}", file=sys.stderr)
            traceback.print_exc()
            return jsonify({"success": False, "error": "Report generation failed"}), 500
        report["success"] = True
        report["stale"] = center.stale
        return jsonify(report), 200

    # ── Auth ─────────────────────────────────────────────────────────

    @app.route("/api/auth/logout", methods=["POST"])
    @token_required
    def logout():
        registry.close(request.identity)
        return jsonify({"success": True, "message": "Logged out successfully"}), 200

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found", "message": str(e)}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "message": str(e)}), 405

    @app.errorhandler(500)
    def internal_error(e):
        return jsonify({"error": "Internal server error", "message": str(e)}), 500
