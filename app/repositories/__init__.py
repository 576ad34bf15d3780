"""
Persistence adapters over the MongoDB collections.

Driver failures leave this package as InternalError.
"""

import logging
from contextlib import contextmanager

from pymongo.errors import PyMongoError

from app.exceptions import InternalError
from app.utils.geo import EARTH_RADIUS_M

logger = logging.getLogger(__name__)


@contextmanager
def mongo_errors(operation: str):
    """Translate driver errors raised inside the block into InternalError."""
    try:
        yield
    except PyMongoError as e:
        logger.exception("MongoDB operation '%s' failed", operation)
        raise InternalError(f"Persistence failure during {operation}") from e


def center_sphere(coordinates, radius_m: float) -> dict:
    """$geoWithin filter for points within radius_m of [lng, lat]."""
    return {"$geoWithin": {"$centerSphere": [list(coordinates), radius_m / EARTH_RADIUS_M]}}
