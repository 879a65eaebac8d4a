from portal_economy.modules.progression.service import ProgressionService

__all__ = ["ProgressionService"]
