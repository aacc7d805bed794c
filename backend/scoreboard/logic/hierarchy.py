"""Parent/child player grouping for team play.

Child players mirror their parent's scores and never get a column or
persisted scores of their own. Child ids may be ``"<userId>:<username>"``
composites, so lookups compare on the user id part.

hierarchy_to_json and hierarchy_from_json are for callers that keep the
hierarchy as a serialized string; the record store persists it as part of
the game snapshot and does not need them.
"""

import json

import structlog

logger = structlog.get_logger()

Hierarchy = dict[str, list[str]]


def _user_part(player_id: str) -> str:
    return player_id.split(":", 1)[0]


def parent_of(hierarchy: Hierarchy, child_id: str) -> str | None:
    target = _user_part(child_id)
    for parent, children in hierarchy.items():
        if any(_user_part(child) == target for child in children):
            return parent
    return None


def is_child(hierarchy: Hierarchy, player_id: str) -> bool:
    return parent_of(hierarchy, player_id) is not None


def children_of(hierarchy: Hierarchy, parent_id: str) -> list[str]:
    return list(hierarchy.get(parent_id, []))


def all_children(hierarchy: Hierarchy) -> list[str]:
    return [child for children in hierarchy.values() for child in children]


def scoring_players(player_ids: list[str], hierarchy: Hierarchy) -> list[str]:
    """Players that own a scoreboard column, in game order (children excluded)."""
    if not hierarchy:
        return list(player_ids)
    return [player_id for player_id in player_ids if not is_child(hierarchy, player_id)]


def participating_players(player_ids: list[str], hierarchy: Hierarchy) -> list[str]:
    """Every identity taking part in the game, children included."""
    seen = set(player_ids)
    return list(player_ids) + [child for child in all_children(hierarchy) if child not in seen]


def hierarchy_display_name(hierarchy: Hierarchy, player_id: str, name: str) -> str:
    """Decorate a parent's name with its team size."""
    child_count = len(hierarchy.get(player_id, []))
    if child_count:
        return f"{name} ({child_count} players)"
    return name


def rename_in_hierarchy(hierarchy: Hierarchy, old_id: str, new_id: str) -> Hierarchy:
    """Return a copy with old_id replaced as a parent key and as a child entry."""
    renamed: Hierarchy = {}
    for parent, children in hierarchy.items():
        key = new_id if parent == old_id else parent
        renamed[key] = [new_id if child == old_id else child for child in children]
    return renamed


def remove_from_hierarchy(hierarchy: Hierarchy, player_id: str) -> Hierarchy:
    """Return a copy without player_id, dropping its team if it was a parent."""
    return {
        parent: [child for child in children if child != player_id]
        for parent, children in hierarchy.items()
        if parent != player_id
    }


def hierarchy_to_json(hierarchy: Hierarchy) -> str:
    return json.dumps(hierarchy, sort_keys=True)


def hierarchy_from_json(raw: str | None) -> Hierarchy:
    """Parse a serialized hierarchy. Blank or malformed input yields an empty hierarchy."""
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("malformed player hierarchy ignored")
        return {}
    if not isinstance(data, dict):
        logger.warning("player hierarchy is not an object", kind=type(data).__name__)
        return {}
    return {
        str(parent): [str(child) for child in children]
        for parent, children in data.items()
        if isinstance(children, list)
    }
