from trackdex.db.database import get_session, init_db
from trackdex.db.operations import (
    add_collection_item,
    add_owned_copy,
    as_utc,
    copy_to_model,
    create_collection,
    create_rarity,
    delete_rarity,
    get_collection,
    get_collection_item,
    get_lowest_rarity,
    get_rarity,
    get_rarity_by_level,
    get_user_collection,
    list_collection_item_ids,
    list_owned_copies,
    list_owned_items_with_rarity,
    list_rarities,
    list_user_collections_with_rewards,
    rarity_to_model,
    release_collection,
    take_collection,
    update_rarity,
)

__all__ = [
    "add_collection_item",
    "add_owned_copy",
    "as_utc",
    "copy_to_model",
    "create_collection",
    "create_rarity",
    "delete_rarity",
    "get_collection",
    "get_collection_item",
    "get_lowest_rarity",
    "get_rarity",
    "get_rarity_by_level",
    "get_session",
    "get_user_collection",
    "init_db",
    "list_collection_item_ids",
    "list_owned_copies",
    "list_owned_items_with_rarity",
    "list_rarities",
    "list_user_collections_with_rewards",
    "rarity_to_model",
    "release_collection",
    "take_collection",
    "update_rarity",
]
