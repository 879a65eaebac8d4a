from portal_economy.modules.income.service import IncomeService, IncomeTicker

__all__ = ["IncomeService", "IncomeTicker"]
