from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from backend.app.core.settings import get_settings
from backend.app.core.base import Base  # noqa: F401 - re-exported for compatibility

_settings = get_settings()

# Pool sizes come from settings so that load tests can tune them without a rebuild
engine = create_async_engine(
    url=_settings.db_url,
    echo=False,
    pool_size=_settings.DB_POOL_SIZE,
    max_overflow=_settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,  # Check the connection before handing it out
    pool_recycle=_settings.DB_POOL_RECYCLE,
    pool_timeout=30,  # Seconds to wait for a pooled connection
)
async_session = async_sessionmaker(engine, expire_on_commit=False)
