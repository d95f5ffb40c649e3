import logging
from logging.config import fileConfig
from alembic import context
from sqlalchemy import engine_from_config, pool
from worktime.db.base import Base  # noqa
from worktime.core.companies.models import Company  # noqa
from worktime.core.rbac.models import User, Role  # noqa
from worktime.core.auth.models import RefreshToken  # noqa
from worktime.core.audit.models import AuditLog  # noqa
from worktime.core.processes.models import Process  # noqa
from worktime.core.timesheets.models import TimesheetRecord, TimesheetRecordItem, ApprovalHistory  # noqa
from worktime.settings import get_settings

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)
target_metadata = Base.metadata
logger = logging.getLogger("alembic.env")

def get_url() -> str:
    return get_settings().DATABASE_SYNC_URL

def run_migrations_offline() -> None:
    context.configure(url=get_url(), target_metadata=target_metadata, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online() -> None:
    cfg = config.get_section(config.config_ini_section, {})
    cfg["sqlalchemy.url"] = get_url()
    connectable = engine_from_config(cfg, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            logger.info("Running migrations against %s", connection.engine.url.render_as_string(hide_password=True))
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
