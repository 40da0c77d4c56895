"""
Flask application factory and server entry-point.
"""

import os

import requests
from flask import Flask

from hospital_portal.config import API_BASE_URL, DEFAULT_PAGE_SIZE, SECRET_KEY, SECRET_KEY_ENV, get_env
from hospital_portal.pages import PAGES
from hospital_portal.web.routes import register_routes


def create_app(config=None, http_session=None):
    """Build and return a fully configured Flask application."""
    app = Flask(__name__)
    app.config.update(
        SECRET_KEY=SECRET_KEY,
        API_BASE_URL=API_BASE_URL,
        PAGE_SIZE=DEFAULT_PAGE_SIZE,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
    )
    if config:
        app.config.update(config)

    # One pooled HTTP session for all backend calls made by this process
    app.extensions["portal_http"] = http_session or requests.Session()

    register_routes(app)
    return app


def main():
    """Run the development server."""
    print("=" * 60)
    print("Hospital Portal – Web Front End")
    print("=" * 60)

    app = create_app({"SECRET_KEY": get_env(SECRET_KEY_ENV)})

    host = os.getenv("PORTAL_HOST", "0.0.0.0")
    port = int(os.getenv("PORTAL_PORT", "3000"))
    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting portal on {host}:{port}")
    print(f"[server] Backend: {app.config['API_BASE_URL']}")
    print(f"[server] Debug mode: {debug}")
    print("\nPages:")
    print(f"  - GET  http://{host}:{port}/            (login)")
    for page in PAGES:
        print(f"  - GET  http://{host}:{port}{page.path:<22} ({page.role})")
    print("\n" + "=" * 60)

    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
