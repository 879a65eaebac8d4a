from portal_economy.modules.collection.service import (
    CollectionService,
    fusion_id,
    new_character,
)

__all__ = ["CollectionService", "fusion_id", "new_character"]
