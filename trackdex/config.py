from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="TRACKDEX_")

    app_name: str = "Trackdex"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/trackdex"

    # Free claims accrue one token per interval since the last grant
    free_claim_interval_seconds: int = Field(default=600, gt=0)

    # Each tier down the ladder is this many times more likely to be drawn
    rarity_weight_base: int = Field(default=3, ge=2)

    # Tokens credited by the add-rewards endpoint
    reward_top_up_amount: int = Field(default=10, gt=0)

    # Tokens granted when a user first takes a collection
    initial_rewards: int = Field(default=0, ge=0)

    # What generic removal does when only stuck copies remain:
    # "last_resort" removes the stuck copy, "never" refuses
    stuck_removal_policy: Literal["last_resort", "never"] = "last_resort"


settings = Settings()


# =============================================================================
# ECONOMY CONSTANTS
# =============================================================================

# Copies consumed by a merge (produces one copy at the next tier)
MERGE_COPIES_REQUIRED = 2

# Copies consumed by a recycle (credits tokens equal to the rarity level)
RECYCLE_COPIES_REQUIRED = 3

# Default tier ladder: (name, color, level)
DEFAULT_RARITIES: tuple[tuple[str, str, int], ...] = (
    ("Common", "#9E9E9E", 1),
    ("Uncommon", "#4CAF50", 2),
    ("Rare", "#2196F3", 3),
    ("Epic", "#9C27B0", 4),
    ("Legendary", "#FF9800", 5),
)
