"""
SQLAlchemy models for the pantry application.
Import all models here to ensure they're registered with SQLAlchemy.
"""
from pantry.models.product import Product
from pantry.models.alias import ProductAlias
from pantry.models.inventory import HouseInventory

__all__ = [
    "Product",
    "ProductAlias",
    "HouseInventory",
]
