from __future__ import annotations

import atexit
import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .database.bootstrap import apply_schema, list_tables

from .container import build_container
from .attendance.controller import register as register_attendance
from .permissions.controller import register as register_permissions
from .policy.controller import register as register_policy
from .regularization.controller import register as register_regularizations

logger = logging.getLogger(__name__)


def create_app(**overrides) -> Flask:
    """App factory. `overrides` replace settings-module values (used by tests)."""

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)

    def setting(name: str, default=None):
        if name in overrides:
            return overrides[name]
        return getattr(settings, name, default)

    logging.basicConfig(
        level=str(setting("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app.secret_key = setting("SECRET_KEY")
    app.config["DEBUG"] = bool(setting("DEBUG", False))
    app.config["TESTING"] = bool(setting("TESTING", False))
    db_config = setting("DB_CONFIG") or {}
    storage_backend = str(setting("STORAGE_BACKEND", "mysql"))

    logger.info(
        "[worktime] settings=%s storage=%s db=%s@%s:%s/%s",
        settings_module,
        storage_backend,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if storage_backend == "mysql" and bool(setting("AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        logger.info("[worktime] schema ready (tables=%s)", len(list_tables(db_config)))

    container = build_container(
        db_config=db_config,
        storage_backend=storage_backend,
        work_hour_defaults=setting("WORK_HOUR_DEFAULTS", {}),
        regularization_levels=setting("REGULARIZATION_LEVELS"),
        regularization_approvals_required=setting("REGULARIZATION_APPROVALS_REQUIRED", 1),
        auto_checkout_interval_minutes=int(setting("AUTO_CHECKOUT_INTERVAL_MINUTES", 5)),
        notification_workers=int(setting("NOTIFICATION_WORKERS", 2)),
        max_cas_retries=int(setting("MAX_CAS_RETRIES", 3)),
    )
    app.extensions["worktime"] = container

    register_attendance(app, container)
    register_regularizations(app, container)
    register_permissions(app, container)
    register_policy(app, container)

    if bool(setting("AUTO_CHECKOUT_SCHEDULER", False)):
        container.auto_checkout_scheduler.start()
        atexit.register(container.auto_checkout_scheduler.stop)
    atexit.register(container.notifier.shutdown)

    return app
