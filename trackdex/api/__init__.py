from trackdex.api.collections import router as collections_router
from trackdex.api.health import router as health_router
from trackdex.api.rarities import router as rarities_router
from trackdex.api.rewards import router as rewards_router

__all__ = [
    "collections_router",
    "health_router",
    "rarities_router",
    "rewards_router",
]
