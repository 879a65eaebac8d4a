from portal_economy.modules.daily.service import DailyService

__all__ = ["DailyService"]
