from models.base import init_engine_and_session, Base
import os
import logging
from logging.handlers import RotatingFileHandler
from time import time

import click
from flask import Flask, request, current_app, g, jsonify
from flask.cli import AppGroup
from dotenv import load_dotenv
from sqlalchemy import text
from controllers.auth import auth_bp, login_manager
from controllers.payments import payments_bp, build_engine
from services.metrics import init_app as init_metrics, REQUEST_COUNT, REQUEST_LATENCY

# --- Load .env exactly once, here ---
load_dotenv()

payments_cli = AppGroup("payments", help="Payment reconciliation operator commands.")


def _env_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).strip().lower() in ("1", "true", "yes", "on")


def _seed_demo_data(app):
    """Demo professor, student and a paid course for local checkout trials."""
    from models.users_db import create_user, get_user_by_email
    from models.catalog_store import create_course, find_course_by_name

    prof = get_user_by_email("profe@upskill.local")
    prof_id = prof["id"] if prof else create_user(
        "profe@upskill.local", "profe1234", role="professor", name="Demo Professor")
    if not get_user_by_email("alumno@upskill.local"):
        create_user("alumno@upskill.local", "alumno1234",
                    role="student", name="Demo Student")
    if not find_course_by_name("Python desde cero"):
        create_course("Python desde cero", prof_id, 150000,
                      description="Curso introductorio de Python")
    app.logger.info("Seeded demo data (development only)")


@payments_cli.command("reconcile")
@click.argument("external_id")
def reconcile_command(external_id):
    """Run reconciliation for one gateway payment id."""
    result = build_engine().reconcile(external_id)
    click.echo(f"{external_id}: {result.outcome}"
               + (f" payment={result.payment_id}" if result.payment_id else ""))


@payments_cli.command("show")
@click.argument("external_id")
def show_command(external_id):
    """Print the stored payment and earnings for a gateway payment id."""
    from models.payments_store import get_payment_by_external_id
    p = get_payment_by_external_id(external_id)
    if not p:
        click.echo(f"{external_id}: not processed")
        return
    click.echo(f"payment {p['id']} status={p['status']} amount_cents={p['amount_cents']} "
               f"course={p['course_id']} student={p['student_id']} enrollment={p['enrollment_id']}")
    for e in p["earnings"]:
        click.echo(f"  earning {e['type']} {e['amount_cents']} status={e['status']}")


def create_app(test_config: dict | None = None):
    app = Flask(__name__, instance_relative_config=True)

    # ---- Base config from environment (no hardcoded secrets) ----
    APP_ENV = os.getenv("APP_ENV", "development").lower()

    # SECRET_KEY:
    # - In production: must be provided
    # - In dev: fall back to a random key each run (sessions will reset on restart)
    secret_key = os.getenv("FLASK_SECRET_KEY")
    if not secret_key and APP_ENV == "production":
        raise RuntimeError("FLASK_SECRET_KEY must be set in production (.env)")
    if not secret_key:
        secret_key = os.urandom(32)  # dev-only fallback

    app.config.from_mapping(
        SECRET_KEY=secret_key,
        APP_ENV=APP_ENV,

        # Payments
        PAYMENT_PROVIDER=os.getenv("PAYMENT_PROVIDER", "mercadopago"),
        PAYMENT_CURRENCY=os.getenv("PAYMENT_CURRENCY", "ARS"),
        PLATFORM_FEE_PERCENT=os.getenv("PLATFORM_FEE_PERCENT", "3"),
        FRONTEND_BASE_URL=os.getenv("FRONTEND_BASE_URL"),
        BACKEND_PUBLIC_URL=os.getenv("BACKEND_PUBLIC_URL"),
    )
    if test_config:
        app.config.update(test_config)

    # ---- Logging ----
    # default on in containers
    log_to_stdout = os.getenv("LOG_TO_STDOUT", "1") == "1"
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)

    if log_to_stdout:
        handler = logging.StreamHandler()
    else:
        log_dir = os.path.join(os.path.dirname(__file__), "log")
        try:
            os.makedirs(log_dir, exist_ok=True)
            handler = RotatingFileHandler(
                os.path.join(log_dir, "app.log"),
                maxBytes=5 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
        except OSError:
            # If file logging fails (e.g., in a container), fall back to stdout
            handler = logging.StreamHandler()

    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    ))

    # avoid duplicate handlers on reload
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    app.logger.setLevel(logging.INFO)

    # ---- DB init ----
    engine, _Session = init_engine_and_session()

    if _env_bool("AUTO_CREATE_SCHEMA", True):
        Base.metadata.create_all(engine, checkfirst=True)

    if app.config["APP_ENV"] == "development" and _env_bool("SEED_DEMO_DATA", True):
        with app.app_context():
            _seed_demo_data(app)

    login_manager.init_app(app)

    # ---- Blueprints ----
    app.register_blueprint(auth_bp)
    app.register_blueprint(payments_bp)
    app.cli.add_command(payments_cli)

    # Prometheus
    if _env_bool("METRICS_ENABLED", True):
        init_metrics(app)

    # ---- Errors ----

    @app.errorhandler(404)
    def not_found(e):
        app.logger.warning("404 %s %s", request.method, request.path)
        return jsonify({"error": "not found", "path": request.path}), 404

    @app.errorhandler(405)
    def not_allowed(e):
        app.logger.warning("405 %s %s", request.method, request.path)
        return jsonify({"error": "method not allowed", "path": request.path}), 405

    # ---- Routes ----
    @app.before_request
    def _start_timer():
        g._t0 = time()

    @app.after_request
    def _log_request(resp):
        ms = (time() - getattr(g, "_t0", time())) * 1000
        app.logger.info("%s %s %s %s %.1fms",
                        request.remote_addr, request.method, request.full_path, resp.status_code, ms)

        # --- Skip self-scrapes to keep series clean ---
        ep = request.endpoint or ""
        path = request.path or ""
        if path.startswith("/metrics"):
            return resp

        endpoint = ep.replace(".", "_") or "unknown"
        REQUEST_COUNT.labels(
            method=request.method, endpoint=endpoint, status=str(resp.status_code)).inc()
        REQUEST_LATENCY.labels(
            endpoint=endpoint, method=request.method).observe(ms / 1000.0)
        return resp

    @app.get("/healthz")
    def healthz():
        # Liveness: process is up, Flask can serve a simple request
        return jsonify(status="ok"), 200

    @app.get("/readyz")
    def readyz():
        # Readiness: app can talk to the DB
        try:
            engine, _ = init_engine_and_session()
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return jsonify(status="ok"), 200
        except Exception as e:
            current_app.logger.exception("Readiness check failed")
            return jsonify(status="error", error=str(e)), 500

    return app


if __name__ == "__main__":
    # TIP: use APP_ENV=production FLASK_SECRET_KEY=... when deploying
    app = create_app()
    app.run(host="0.0.0.0", port=8000, debug=(
        app.config["APP_ENV"] != "production"))
