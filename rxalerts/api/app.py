"""
Flask application factory and server entry-point.
"""

import atexit
import os
import sys
import traceback

from flask import Flask
from flask_cors import CORS

from rxalerts.config import (
    CLEANUP_INTERVAL_SECONDS,
    DISMISSALS_FILE,
    POLL_INTERVAL_SECONDS,
    STORAGE_WATCH_SECONDS,
)
from rxalerts.dismissals import DismissalStore
from rxalerts.medicine_api import init_provider_factory
from rxalerts.poller import PollingDriver
from rxalerts.service import NotificationRegistry
from rxalerts.storage import JsonFileStore
from rxalerts.api.routes import register_routes


def init_registry(store=None):
    """Build the shared dismissal store and per-identity registry."""
    if store is None:
        print(f"[init] Dismissal state file: {DISMISSALS_FILE}")
        store = JsonFileStore(DISMISSALS_FILE)
    dismissals = DismissalStore(store)
    provider_factory = init_provider_factory()

    if provider_factory(None).check_connection():
        print("[init] ✓ Medicine snapshot source reachable")
    else:
        print("[WARN] Medicine snapshot source not reachable; notifications will be empty until it is",
              file=sys.stderr)

    registry = NotificationRegistry(provider_factory, dismissals)
    return store, registry


def create_app(registry=None, store=None):
    """Build and return a fully configured Flask application."""
    app = Flask(__name__)
    CORS(app)

    # ── Initialise shared resources ──────────────────────────────────
    if registry is None:
        try:
            print("[init] Initializing notification registry...")
            store, registry = init_registry(store)

            watcher = PollingDriver(store.check_for_changes, STORAGE_WATCH_SECONDS, name="storage-watch")
            watcher.start()
            atexit.register(watcher.stop)

            cleanup = PollingDriver(registry.close_idle, CLEANUP_INTERVAL_SECONDS, name="center-cleanup")
            cleanup.start()
            atexit.register(cleanup.stop)
            atexit.register(registry.close_all)

            print("[init] ✓ API server ready")
        except Exception as e:
            print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
            traceback.print_exc()
            sys.exit(1)

    def storage_ok():
        path = getattr(store, "path", None)
        if not path:
            return True
        # The directory is created on first write, so check its parent if missing.
        directory = os.path.dirname(os.path.abspath(path))
        if not os.path.isdir(directory):
            directory = os.path.dirname(directory)
        return os.access(directory, os.W_OK)

    # ── Register routes ──────────────────────────────────────────────
    register_routes(app, registry, storage_ok)
    app.config["REGISTRY"] = registry

    return app


def main():
    """Run the development server."""
    print("=" * 60)
    print("Pharmacy Notifications – REST API Server")
    print("=" * 60)

    app = create_app()

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))
    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting Flask API on {host}:{port}")
    print(f"[server] Debug mode: {debug}")
    print(f"[server] CORS enabled: True")
    print(f"[server] Poll interval: {POLL_INTERVAL_SECONDS}s")
    print("\nAPI Endpoints:")
    print(f"  - GET    http://{host}:{port}/api/notifications/count")
    print(f"  - GET    http://{host}:{port}/api/notifications")
    print(f"  - POST   http://{host}:{port}/api/notifications/seen")
    print(f"  - DELETE http://{host}:{port}/api/notifications/<id>")
    print(f"  - POST   http://{host}:{port}/api/notifications/refresh")
    print(f"  - GET    http://{host}:{port}/api/expiry/alerts")
    print(f"  - GET    http://{host}:{port}/api/expiry/report")
    print(f"  - POST   http://{host}:{port}/api/auth/logout")
    print(f"  - GET    http://{host}:{port}/health")
    print("\n" + "=" * 60)

    # The reloader would start a second set of pollers.
    app.run(host=host, port=port, debug=debug, threaded=True, use_reloader=False)


if __name__ == "__main__":
    main()
