"""ORM models for the jam3a domain."""

from jam3a.db.models.category import Category
from jam3a.db.models.deal import Deal, DealStatus
from jam3a.db.models.deal_participant import DealParticipant
from jam3a.db.models.product import Product
from jam3a.db.models.user import User, UserRole

__all__ = [
    "Category",
    "Deal",
    "DealParticipant",
    "DealStatus",
    "Product",
    "User",
    "UserRole",
]
