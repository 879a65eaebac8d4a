from portal_economy.modules.shop.service import ShopOffer, ShopService, rotate_offers

__all__ = ["ShopOffer", "ShopService", "rotate_offers"]
