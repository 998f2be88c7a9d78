"""
Trackdex services.

The rarity and reward economy: claim, merge, recycle, stick, free-claim
accrual and the manual ownership edits around them.
"""

from trackdex.services.accounts import merge_user_accounts
from trackdex.services.claim_engine import claim_random_item
from trackdex.services.free_claim import accrued_intervals, claim_free_rewards, seconds_until_next
from trackdex.services.inventory import grant_copy, remove_copy
from trackdex.services.ledger import contention_guard, is_lock_contention
from trackdex.services.merge_engine import merge_items
from trackdex.services.rarity_draw import pick_weighted_rarity, rarity_distribution, rarity_weights
from trackdex.services.recycle_engine import recycle_items
from trackdex.services.rewards import add_rewards
from trackdex.services.stick import stick_item, unstick_item

__all__ = [
    "accrued_intervals",
    "add_rewards",
    "claim_free_rewards",
    "claim_random_item",
    "contention_guard",
    "grant_copy",
    "is_lock_contention",
    "merge_items",
    "merge_user_accounts",
    "pick_weighted_rarity",
    "rarity_distribution",
    "rarity_weights",
    "recycle_items",
    "remove_copy",
    "seconds_until_next",
    "stick_item",
    "unstick_item",
]
