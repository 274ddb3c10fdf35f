import logging

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm import declarative_base

from barbershop import config

logger = logging.getLogger(__name__)

engine = create_async_engine(config.DATABASE_URL, echo=config.SQL_ECHO, pool_pre_ping=True)
logger.info("Database engine created for %s", engine.url.render_as_string(hide_password=True))

AsyncSessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


# Зависимость для получения сессии БД
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
