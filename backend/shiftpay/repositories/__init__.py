"""Repository package exposing persistence-layer access for domain models."""

from __future__ import annotations

from shiftpay.repositories.base import BaseRepository
from shiftpay.repositories.user import UserRepository

__all__ = ["BaseRepository", "UserRepository"]
