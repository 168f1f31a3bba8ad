# app/db/operations.py
"""Common session helpers shared by routers and services."""

from sqlalchemy.ext.asyncio import AsyncSession


async def commit_async(session: AsyncSession) -> None:
    await session.commit()
