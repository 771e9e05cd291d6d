"""User directory: who the batch jobs run for and where to email them."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sattrack.config import ConfigurationError, Settings, get_settings
from sattrack.db.models import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectoryUser:
    """Identity and email address of one user."""

    id: UUID
    email: str | None


class UserDirectory(Protocol):
    async def list_users(self) -> list[DirectoryUser]: ...


class DatabaseUserDirectory:
    """Reads users from the `users` table mirrored from the auth provider."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list_users(self) -> list[DirectoryUser]:
        async with self.session_factory() as db:
            result = await db.execute(select(User.id, User.email).order_by(User.created_at))
            return [DirectoryUser(id=row.id, email=row.email) for row in result]


class SupabaseUserDirectory:
    """
    Lists users through the hosted auth admin API.

    Requires the project URL and the service-role key; both missing or empty
    is a configuration error, raised before any request is made.
    """

    def __init__(
        self,
        supabase_url: str | None,
        service_role_key: str | None,
        *,
        page_size: int = 1000,
        client: httpx.AsyncClient | None = None,
    ):
        self.supabase_url = (supabase_url or "").rstrip("/")
        self.service_role_key = service_role_key
        self.page_size = page_size
        self._client = client

    async def list_users(self) -> list[DirectoryUser]:
        if not self.supabase_url or not self.service_role_key:
            raise ConfigurationError("Missing Supabase configuration")

        headers = {
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
        }
        url = f"{self.supabase_url}/auth/v1/admin/users"
        users: list[DirectoryUser] = []

        async with self._client_scope() as client:
            page = 1
            while True:
                response = await client.get(
                    url,
                    headers=headers,
                    params={"page": page, "per_page": self.page_size},
                )
                response.raise_for_status()
                batch = response.json().get("users", [])
                users.extend(
                    DirectoryUser(id=UUID(item["id"]), email=item.get("email")) for item in batch
                )
                if len(batch) < self.page_size:
                    break
                page += 1

        logger.info("Loaded %d users from auth directory", len(users))
        return users

    @asynccontextmanager
    async def _client_scope(self) -> AsyncGenerator[httpx.AsyncClient, None]:
        """Yield the injected client, or a short-lived one that is closed afterwards."""
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=30.0) as client:
            yield client


def build_user_directory(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings | None = None,
) -> UserDirectory:
    """Pick the directory implementation configured by USER_DIRECTORY."""
    settings = settings or get_settings()
    if settings.user_directory == "supabase":
        return SupabaseUserDirectory(
            settings.supabase_url,
            settings.supabase_service_role_key,
            page_size=settings.directory_page_size,
        )
    return DatabaseUserDirectory(session_factory)
