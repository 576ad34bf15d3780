"""Cab Pool Routers Package"""

from app.routers import (
    pool,
    groups,
    notifications,
)

__all__ = [
    "pool",
    "groups",
    "notifications",
]
