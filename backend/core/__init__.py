# Core module exports
from core.config import Settings, SchedulerSettings, get_settings
from core.database import Base, create_engine, create_session_factory, create_tables
from core.logging import (
    configure_logging,
    get_logger,
    bind_context,
    clear_context,
    generate_correlation_id,
    api_logger,
    engine_logger,
    db_logger,
    srs_logger,
    session_logger,
)
