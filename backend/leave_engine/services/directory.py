# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from leave_engine.models.enums import TrainerCategory, UserRole, UserStatus


class TrainerInfo(BaseModel):
    """Trainer metadata owned by the User Directory."""

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    role: UserRole = UserRole.TRAINER
    category: TrainerCategory = TrainerCategory.PERMANENT
    status: UserStatus = UserStatus.ACTIVE

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@runtime_checkable
class UserDirectory(Protocol):
    """Interface for the User Directory."""

    async def get_trainer(self, trainer_id: uuid.UUID) -> TrainerInfo | None:
        """Fetch trainer metadata. Returns None if not found."""
        ...

    async def list_trainers(self) -> list[TrainerInfo]:
        """List all known trainers."""
        ...


class InMemoryUserDirectory:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._trainers: dict[uuid.UUID, TrainerInfo] = {}

    def seed(self, trainer: TrainerInfo) -> None:
        """Seed a trainer for testing."""
        self._trainers[trainer.id] = trainer

    async def get_trainer(self, trainer_id: uuid.UUID) -> TrainerInfo | None:
        """Fetch trainer metadata. Returns None if not found."""
        return self._trainers.get(trainer_id)

    async def list_trainers(self) -> list[TrainerInfo]:
        """List all known trainers."""
        return list(self._trainers.values())


_user_directory: UserDirectory = InMemoryUserDirectory()


def get_user_directory() -> UserDirectory:
    """Return the configured User Directory."""
    return _user_directory


def set_user_directory(directory: UserDirectory) -> None:
    """Override the directory (for testing or production wiring)."""
    global _user_directory
    _user_directory = directory


async def list_active_trainers(category: TrainerCategory | None = None) -> list[TrainerInfo]:
    """ACTIVE trainers known to the directory, optionally of one category, in id order."""
    trainers = await get_user_directory().list_trainers()
    return sorted(
        (
            t
            for t in trainers
            if t.status == UserStatus.ACTIVE and (category is None or t.category == category)
        ),
        key=lambda t: str(t.id),
    )
