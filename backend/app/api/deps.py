from typing import AsyncGenerator, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.core.database import async_session
from backend.app.core.settings import get_settings
from backend.app.services.cache import CacheService
from backend.app.services.order_effects import BackgroundEffectRunner


# One database session per request
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        yield session


# Cache service per request, sharing one Redis connection
async def get_cache() -> AsyncGenerator[CacheService, None]:
    redis = await CacheService.get_redis()
    yield CacheService(redis)


_effect_runner: Optional[BackgroundEffectRunner] = None


# Process-wide runner for post-order effects; drained on shutdown
def get_effect_runner() -> BackgroundEffectRunner:
    global _effect_runner
    if _effect_runner is None:
        _effect_runner = BackgroundEffectRunner(
            async_session,
            timeout=get_settings().POST_ORDER_EFFECT_TIMEOUT,
        )
    return _effect_runner
