import logging
import os
from datetime import datetime

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS
from sqlalchemy import event, text
from werkzeug.middleware.proxy_fix import ProxyFix

load_dotenv()

from config import Config  # noqa: E402
from extensions import db, limiter  # noqa: E402


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _serialize_sqlite_writes(engine) -> None:
    """Make SQLite take the write lock when a transaction starts.

    pysqlite's default deferred BEGIN lets two engagement transactions both
    read and then deadlock on lock upgrade. BEGIN IMMEDIATE queues them
    instead, and also makes SAVEPOINT behave.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    _configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Enforce a strong SECRET_KEY in production (do not allow dev fallbacks).
    if app.config.get("PRODUCTION") and str(app.config["SECRET_KEY"]).startswith("dev-secret-key-change"):
        raise RuntimeError("SECRET_KEY must be set to a strong random value in production.")

    # Render (and most PaaS) runs behind a reverse proxy. Without ProxyFix,
    # request.remote_addr will be the proxy IP and rate limits collapse.
    if app.config.get("PRODUCTION"):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    is_sqlite = str(app.config["SQLALCHEMY_DATABASE_URI"]).startswith("sqlite")
    if is_sqlite:
        engine_options = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
        engine_options.setdefault("connect_args", {"timeout": 30})
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options

    db.init_app(app)
    CORS(app)
    limiter.init_app(app)

    # Models must be imported before create_all().
    import models_points  # noqa: F401
    import models_posts  # noqa: F401
    import models_users  # noqa: F401
    from admin_posts import admin_posts
    from points_api import points_api

    app.register_blueprint(points_api)
    app.register_blueprint(admin_posts)

    @app.after_request
    def add_perf_headers(resp):
        # Responses are user-specific; never cache them.
        resp.headers.setdefault("Cache-Control", "no-store")
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        return resp

    @app.route("/api/health", methods=["GET"])
    def health_check():
        try:
            db.session.execute(text("SELECT 1"))
            db.session.rollback()
            return jsonify({"status": "healthy", "database": "connected", "timestamp": datetime.utcnow().isoformat()})
        except Exception as e:
            app.logger.exception("Health check failed")
            return jsonify({"status": "unhealthy", "database": "disconnected", "error": str(e)}), 503

    @app.errorhandler(429)
    def ratelimit_handler(e):
        return jsonify({"success": False, "error": f"Rate limit exceeded: {e.description}"}), 429

    with app.app_context():
        if is_sqlite:
            _serialize_sqlite_writes(db.engine)
        db.create_all()
        app.logger.info("BoostBuddies points service ready (db=%s)", db.engine.dialect.name)
    return app


if __name__ == "__main__":
    app = create_app()
    port = int(os.getenv("PORT", 5000))
    debug = os.getenv("FLASK_ENV", "development") == "development"

    print("=" * 60)
    print("BoostBuddies points & approval service")
    print("=" * 60)
    print(f"API:        http://localhost:{port}/api/leaderboard")
    print(f"Moderation: http://localhost:{port}/api/admin/posts/pending")
    print(f"Health:     http://localhost:{port}/api/health")
    print("=" * 60)

    app.run(host="0.0.0.0", port=port, debug=debug)
