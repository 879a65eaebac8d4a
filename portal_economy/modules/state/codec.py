"""
Snapshot codec.

Converts ``PlayerState`` to and from the persisted JSON record. The record
keeps the camelCase field names of the stored format so existing snapshots
stay readable:

    unlockedCharacters, level, rewardPoints, coins, selectedCoinFarm,
    lastOnline, lastDailyBonus, dailyBonusStreak, claimedLevelRewards

Decoding is strict about types and lenient about absent optional fields;
anything it cannot interpret raises ``StateCorruptionError``.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, Mapping, Optional

from portal_economy.core.exceptions import StateCorruptionError
from portal_economy.domain.models import (
    Character,
    CharacterId,
    DomainValidationError,
    PlayerState,
)

Record = Dict[str, Any]


# =============================================================================
# Encoding
# =============================================================================


def _encode_datetime(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def encode_character(character: Character) -> Record:
    record: Record = {
        "id": character.id,
        "name": character.name,
        "image": character.image,
        "characterLevel": character.character_level,
        "baseSpeed": character.base_speed,
        "rarity": character.rarity,
        "unlockDate": _encode_datetime(character.unlock_date),
    }
    if character.is_fusion:
        record["isFusion"] = True
        record["parents"] = list(character.parents or ())
    return record


def to_record(state: PlayerState) -> Record:
    record: Record = {
        "unlockedCharacters": [encode_character(c) for c in state.unlocked_characters],
        "level": state.level,
        "rewardPoints": state.reward_points,
        "coins": state.coins,
        "selectedCoinFarm": state.selected_income_source,
        "lastOnline": _encode_datetime(state.last_online),
        "dailyBonusStreak": state.daily_bonus_streak,
        "claimedLevelRewards": sorted(state.claimed_level_rewards),
    }
    if state.last_daily_bonus is not None:
        record["lastDailyBonus"] = state.last_daily_bonus.isoformat()
    return record


# =============================================================================
# Decoding
# =============================================================================


def _typed(value: Any, field: str, expected: type | tuple[type, ...]) -> Any:
    # bool is an int subclass; a flag is never a valid number here
    if isinstance(value, bool) or not isinstance(value, expected):
        raise StateCorruptionError(
            f"expected {expected}, got {type(value).__name__}",
            field=field,
        )
    return value


def _required(record: Mapping[str, Any], key: str, expected: type | tuple[type, ...]) -> Any:
    if key not in record:
        raise StateCorruptionError("missing required field", field=key)
    return _typed(record[key], key, expected)


def _optional(
    record: Mapping[str, Any],
    key: str,
    expected: type | tuple[type, ...],
    default: Any,
    field: Optional[str] = None,
) -> Any:
    value = record.get(key)
    if value is None:
        return default
    return _typed(value, field or key, expected)


def _decode_datetime(raw: Any, field: str) -> datetime:
    if not isinstance(raw, str):
        raise StateCorruptionError("expected ISO-8601 timestamp string", field=field)
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError as exc:
        raise StateCorruptionError(str(exc), field=field) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _decode_date(raw: Any, field: str) -> date:
    if not isinstance(raw, str):
        raise StateCorruptionError("expected ISO-8601 date string", field=field)
    try:
        # Older snapshots stored a full timestamp here
        return date.fromisoformat(raw[:10])
    except ValueError as exc:
        raise StateCorruptionError(str(exc), field=field) from exc


def _decode_id(raw: Any, field: str) -> CharacterId:
    return _typed(raw, field, (int, str))


def decode_character(record: Any, index: int) -> Character:
    prefix = f"unlockedCharacters[{index}]"
    if not isinstance(record, Mapping):
        raise StateCorruptionError("expected object", field=prefix)

    parents_raw = record.get("parents")
    parents: Optional[tuple[CharacterId, CharacterId]] = None
    if parents_raw is not None:
        if not isinstance(parents_raw, list) or len(parents_raw) != 2:
            raise StateCorruptionError("expected two parent ids", field=f"{prefix}.parents")
        parents = (
            _decode_id(parents_raw[0], f"{prefix}.parents"),
            _decode_id(parents_raw[1], f"{prefix}.parents"),
        )

    try:
        return Character(
            id=_decode_id(record.get("id"), f"{prefix}.id"),
            name=str(record.get("name", "")),
            image=str(record.get("image", "")),
            rarity=_typed(record.get("rarity"), f"{prefix}.rarity", int),
            unlock_date=_decode_datetime(record.get("unlockDate"), f"{prefix}.unlockDate"),
            character_level=_optional(
                record, "characterLevel", int, 1, field=f"{prefix}.characterLevel"
            ),
            base_speed=float(
                _optional(record, "baseSpeed", (int, float), 1.0, field=f"{prefix}.baseSpeed")
            ),
            is_fusion=parents is not None,
            parents=parents,
        )
    except DomainValidationError as exc:
        raise StateCorruptionError(str(exc), field=f"{prefix}.{exc.field}") from exc


def from_record(record: Any) -> PlayerState:
    """
    Decode a stored record.

    Raises
    ------
    StateCorruptionError
        If the record is not an object, a field has the wrong type, or the
        decoded values violate a model invariant.
    """
    if not isinstance(record, Mapping):
        raise StateCorruptionError(f"expected object, got {type(record).__name__}")

    characters_raw = _optional(record, "unlockedCharacters", list, [])
    claimed_raw = _optional(record, "claimedLevelRewards", list, [])
    claimed = frozenset(_typed(v, "claimedLevelRewards", int) for v in claimed_raw)

    selected = record.get("selectedCoinFarm")
    if selected is not None:
        selected = _decode_id(selected, "selectedCoinFarm")

    last_bonus_raw = record.get("lastDailyBonus")

    try:
        return PlayerState(
            last_online=_decode_datetime(_required(record, "lastOnline", str), "lastOnline"),
            coins=_optional(record, "coins", (int, float), 0),
            reward_points=_optional(record, "rewardPoints", int, 0),
            level=_optional(record, "level", int, 1),
            unlocked_characters=tuple(
                decode_character(raw, i) for i, raw in enumerate(characters_raw)
            ),
            selected_income_source=selected,
            last_daily_bonus=(
                _decode_date(last_bonus_raw, "lastDailyBonus")
                if last_bonus_raw is not None
                else None
            ),
            daily_bonus_streak=_optional(record, "dailyBonusStreak", int, 0),
            claimed_level_rewards=claimed,
        )
    except DomainValidationError as exc:
        raise StateCorruptionError(str(exc), field=exc.field) from exc
