"""Application DTOs."""

from basin.application.dtos.items import ItemListResult, ItemMeta, ItemResult, ListMeta

__all__ = ["ItemListResult", "ItemMeta", "ItemResult", "ListMeta"]
