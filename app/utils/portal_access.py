"""
Portal access flags: which portal (client or team) a user may land on.
"""
from typing import Iterable, List

CLIENT = 'client'
TEAM = 'team'
PORTAL_TYPES = (CLIENT, TEAM)


def normalize_portal_types(rows: Iterable) -> List[str]:
    """
    Reduce access rows (models, dicts, or plain strings) to known portal types.
    """
    if not rows:
        return []

    portals = []
    for row in rows:
        if row is None:
            continue
        if isinstance(row, str):
            value = row
        elif isinstance(row, dict):
            value = row.get('portal_type')
        else:
            value = getattr(row, 'portal_type', None)
        if value in PORTAL_TYPES:
            portals.append(value)
    return portals


def has_client_portal(portals: List[str]) -> bool:
    return CLIENT in portals


def has_team_portal(portals: List[str]) -> bool:
    return TEAM in portals


def can_access_client_portal(portals: List[str]) -> bool:
    # No recorded access yet means a plain customer
    return has_client_portal(portals) or len(portals) == 0


def landing_portal(portals: List[str]) -> str:
    if has_team_portal(portals) and not has_client_portal(portals):
        return TEAM
    return CLIENT
