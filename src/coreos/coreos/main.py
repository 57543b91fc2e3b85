from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables

from .container import Container, build_container
from .blackouts.controller import register as register_blackouts
from .organization.controller import register as register_organization
from .pto_balances.controller import register as register_pto_balances
from .pto_policies.controller import register as register_pto_policies
from .pto_requests.controller import register as register_pto_requests
from .pto_types.controller import register as register_pto_types
from .route_permissions.commands import register as register_route_commands
from .route_permissions.controller import register as register_access_control
from .route_permissions.middleware import register as register_route_middleware
from .timesheets.controller import register as register_timesheets
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    """Application factory; pass a container to skip database setup."""
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["SUPER_ADMIN_EMAIL"] = getattr(settings, "SUPER_ADMIN_EMAIL", None)

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if container is None:
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        database_dir = Path(__file__).resolve().parents[3] / "database"
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=database_dir / "schema.sql")
            logger.info("schema ready (tables=%s)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=database_dir / "seed.sql")
            ensure_demo_users(db_config)
            logger.info("demo seed ready")

        container = build_container(db_config=db_config, super_admin_email=app.config["SUPER_ADMIN_EMAIL"])

    register_users(app, container)
    register_organization(app, container)
    register_pto_types(app, container)
    register_pto_policies(app, container)
    register_pto_balances(app, container)
    register_blackouts(app, container)
    register_pto_requests(app, container)
    register_timesheets(app, container)
    register_access_control(app, container)
    register_route_commands(app, container)
    if bool(getattr(settings, "ROUTE_PERMISSIONS_ENABLED", True)):
        register_route_middleware(app, container)

    return app
