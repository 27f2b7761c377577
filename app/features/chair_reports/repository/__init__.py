"""
Key-value repositories for the chair report feature.
"""

from .item_config_repository import ItemConfigRepository, item_config_repository
from .order_repository import OrderRepository, order_repository

__all__ = [
    "ItemConfigRepository",
    "OrderRepository",
    "item_config_repository",
    "order_repository",
]
