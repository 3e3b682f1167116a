import logging
import os
from flask import Flask


def create_app():
    app = Flask(__name__)

    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))

    db_url = os.environ.get("DATABASE_URL")
    if not db_url:
        raise RuntimeError(
            "DATABASE_URL is required. Documents are stored in PostgreSQL."
        )

    # Initialize connection pool early (optional; direct connect works if pool init fails)
    try:
        from . import datastore_pg as _pg
        try:
            minconn = int(os.environ.get("DB_POOL_MIN", "1"))
        except ValueError:
            minconn = 1
        try:
            maxconn = int(os.environ.get("DB_POOL_MAX", "10"))
        except ValueError:
            maxconn = 10
        _pg.init_pool(minconn=minconn, maxconn=maxconn)
    except Exception:  # pragma: no cover
        app.logger.exception("PostgreSQL pool initialization failed; continuing without pool")

    from . import routes  # type: ignore
    from .commands import register_commands
    app.register_blueprint(routes.bp)
    register_commands(app)

    if os.environ.get("ENSURE_SCHEMA_ON_STARTUP", "1").lower() not in ("0", "false"):
        app.logger.info("Ensuring document schema")
        try:
            from .datastore import ensure_schema
            ensure_schema()
        except Exception:  # pylint: disable=broad-except
            app.logger.exception("Error ensuring document schema")

    return app
