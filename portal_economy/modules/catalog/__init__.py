from portal_economy.modules.catalog.client import CatalogClient, CatalogPage

__all__ = ["CatalogClient", "CatalogPage"]
