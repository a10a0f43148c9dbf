# backend/client/storage.py
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncEngine
from database import create_db_and_tables, make_sessionmaker
from models import LocalStorageItem


class LocalStorage:
    """Durable string key/value store with the browser localStorage interface."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._sessionmaker = make_sessionmaker(engine)
        self._ready = False

    async def _ensure_tables(self):
        if not self._ready:
            await create_db_and_tables(self.engine)
            self._ready = True

    async def get_item(self, key: str) -> Optional[str]:
        await self._ensure_tables()
        async with self._sessionmaker() as session:
            item = await session.get(LocalStorageItem, key)
            return item.value if item else None

    async def set_item(self, key: str, value: str) -> None:
        await self._ensure_tables()
        async with self._sessionmaker() as session:
            item = await session.get(LocalStorageItem, key)
            if item:
                item.value = value
            else:
                item = LocalStorageItem(key=key, value=value)
            session.add(item)
            await session.commit()

    async def remove_item(self, key: str) -> None:
        await self._ensure_tables()
        async with self._sessionmaker() as session:
            item = await session.get(LocalStorageItem, key)
            if item:
                await session.delete(item)
                await session.commit()
