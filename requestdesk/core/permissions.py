"""Permissions utilisateur (bitmask)."""
from enum import IntFlag
from typing import Iterable


class Permission(IntFlag):
    NONE = 0
    ADMIN = 2
    MANAGE_SETTINGS = 4
    MANAGE_USERS = 8
    MANAGE_REQUESTS = 16
    REQUEST = 32
    VOTE = 64
    AUTO_APPROVE = 128


def has_permission(permissions: int, required: Permission) -> bool:
    """Vérifie si un bitmask contient la permission demandée (ADMIN les contient toutes)."""
    if permissions & Permission.ADMIN:
        return True
    return bool(permissions & required)


def permissions_from_names(names: Iterable[str]) -> int:
    """Convertit une liste de noms (["REQUEST", "AUTO_APPROVE"]) en bitmask."""
    mask = Permission.NONE
    for name in names:
        try:
            mask |= Permission[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown permission: {name}")
    return int(mask)
