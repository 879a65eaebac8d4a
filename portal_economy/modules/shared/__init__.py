from portal_economy.modules.shared.base_service import BaseService
from portal_economy.modules.shared.exceptions import (
    AlreadyClaimedError,
    AlreadyClaimedTodayError,
    InsufficientFundsError,
    InvalidOperationError,
    LevelRequirementError,
    NotFoundError,
    PortalDomainException,
    ProtectedAssetError,
    ShopLockedError,
    ValidationError,
    get_error_severity,
    should_alert,
)

__all__ = [
    "AlreadyClaimedError",
    "AlreadyClaimedTodayError",
    "BaseService",
    "InsufficientFundsError",
    "InvalidOperationError",
    "LevelRequirementError",
    "NotFoundError",
    "PortalDomainException",
    "ProtectedAssetError",
    "ShopLockedError",
    "ValidationError",
    "get_error_severity",
    "should_alert",
]
