"""
catalog.py — Static activity and card catalogs
===============================================
Loads the activity sequence and the card pool from sitesim/data/*.json.

Persisted rooms and hand-edited data files have used more than one shape
for the activity collection (a list, or an object keyed by id) and more
than one spelling per field. `normalize_activities` is the single place
where those shapes are converted; everything past this module only ever
sees `list[Activity]` in catalog order.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

from sitesim.engine.errors import DataIntegrityError
from sitesim.engine.models import Activity, Card, DeckType, GameState

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

# canonical field -> accepted spellings, first match wins
_ACTIVITY_FIELDS: dict[str, tuple[str, ...]] = {
    "id": ("id", "code", "activityId"),
    "name": ("name", "title", "activityName"),
    "base_time": ("base_time", "baseTime", "duration", "time", "weeks"),
    "base_cost": ("base_cost", "baseCost", "cost", "bpCost"),
    "req_workers": ("req_workers", "reqWorkers", "workers", "workerReq"),
    "req_machines": ("req_machines", "reqMachines", "machines", "machineReq"),
    "dep": ("dep", "dependency", "dependencies"),
}

_CARD_EFFECT_FIELDS: dict[str, tuple[str, ...]] = {
    "time_delta": ("time_delta", "timeDelta"),
    "cost_delta": ("cost_delta", "costDelta"),
    "prod_delta": ("prod_delta", "prodDelta"),
    "coin_delta": ("coin_delta", "coinDelta"),
    "buff": ("buff",),
}


def _pick(raw: dict, names: tuple[str, ...], default: Any = None) -> Any:
    for name in names:
        if raw.get(name) is not None:
            return raw[name]
    return default


def _id_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value else []
    return list(value or [])


def _normalize_dep(raw: Any) -> dict:
    if raw is None:
        return {"type": "NONE"}
    if isinstance(raw, str):
        # a bare id is a single strict prerequisite
        return {"type": "FS", "on": [raw]}
    if isinstance(raw, list):
        return {"type": "FS", "on": list(raw)} if raw else {"type": "NONE"}
    dep_type = str(raw.get("type", "NONE")).upper()
    if dep_type == "FS":
        return {"type": "FS", "on": _id_list(raw.get("on"))}
    if dep_type == "SS":
        return {"type": "SS", "with": _id_list(raw.get("with") or raw.get("with_"))}
    return {"type": "NONE"}


def normalize_activities(raw: Any) -> list[Activity]:
    """
    Convert any known activity-collection shape to the canonical sequence.

    Args:
        raw: a list of activity dicts, or a mapping whose values are
            activity dicts (insertion order is kept)

    Returns:
        list[Activity] in catalog order

    Raises:
        DataIntegrityError: empty collection or an entry without an id
    """
    if isinstance(raw, dict):
        entries = list(raw.values())
    elif isinstance(raw, (list, tuple)):
        entries = list(raw)
    else:
        entries = []

    if not entries:
        raise DataIntegrityError("Activity catalog is empty.")

    activities: list[Activity] = []
    for pos, entry in enumerate(entries):
        if isinstance(entry, Activity):
            activities.append(entry)
            continue
        if not isinstance(entry, dict):
            raise DataIntegrityError(f"Activity entry #{pos} is not an object.")
        activity_id = _pick(entry, _ACTIVITY_FIELDS["id"], "")
        if not activity_id:
            raise DataIntegrityError(f"Activity entry #{pos} has no id.")
        activities.append(Activity(
            id=str(activity_id),
            name=str(_pick(entry, _ACTIVITY_FIELDS["name"], "")),
            base_time=int(_pick(entry, _ACTIVITY_FIELDS["base_time"], 0)),
            base_cost=int(_pick(entry, _ACTIVITY_FIELDS["base_cost"], 0)),
            req_workers=int(_pick(entry, _ACTIVITY_FIELDS["req_workers"], 0)),
            req_machines=int(_pick(entry, _ACTIVITY_FIELDS["req_machines"], 0)),
            dep=_normalize_dep(_pick(entry, _ACTIVITY_FIELDS["dep"])),
        ))

    seen: set[str] = set()
    for a in activities:
        if a.id in seen:
            raise DataIntegrityError(f"Duplicate activity id: {a.id}")
        seen.add(a.id)
    return activities


def normalize_cards(raw: Any) -> list[Card]:
    entries = list(raw.values()) if isinstance(raw, dict) else list(raw or [])
    cards: list[Card] = []
    for entry in entries:
        effect = entry.get("effect") or {}
        cards.append(Card(
            id=entry["id"],
            type=DeckType(entry["type"]),
            title=entry.get("title", ""),
            rules_text=entry.get("rules_text", entry.get("rulesText", "")),
            effect={
                field: _pick(effect, names)
                for field, names in _CARD_EFFECT_FIELDS.items()
                if _pick(effect, names) is not None
            },
        ))
    return cards


def _read_json(name: str) -> Any:
    path = DATA_DIR / name
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


@lru_cache(maxsize=1)
def _activities() -> tuple[Activity, ...]:
    activities = normalize_activities(_read_json("activities.json"))
    logger.info(f"Loaded {len(activities)} activities")
    return tuple(activities)


@lru_cache(maxsize=1)
def _cards() -> tuple[Card, ...]:
    cards = normalize_cards(_read_json("cards.json"))
    logger.info(f"Loaded {len(cards)} cards")
    return tuple(cards)


def get_activities() -> list[Activity]:
    """The authoritative activity sequence."""
    return list(_activities())


def get_cards() -> list[Card]:
    return list(_cards())


@lru_cache(maxsize=1)
def _card_index() -> dict[str, Card]:
    return {c.id: c for c in _cards()}


def find_card(card_id: str) -> Card | None:
    return _card_index().get(card_id)


def hydrate_state(raw: dict) -> GameState:
    """
    Build a GameState from persisted JSON.

    Whatever was stored under `activities` is discarded; the catalog is
    always re-attached from static data.
    """
    data = {k: v for k, v in raw.items() if k != "activities"}
    state = GameState.model_validate(data)
    state.activities = get_activities()
    return state
