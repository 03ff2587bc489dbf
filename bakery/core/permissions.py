"""
RBAC: роль × ресурс.
Роли приходят из профиля (profiles.role); ресурсы — разделы панели персонала.
"""
from enum import Enum
from typing import List, Optional

from bakery.models.profile import ProfileRole


class Resource(str, Enum):
    """Ресурсы для проверки доступа."""
    ORDERS = "ORDERS"             # список заказов персонала, смена статусов
    PREPARED = "PREPARED"         # пул приготовленного, партии
    FIFO = "FIFO"                 # распределение FIFO
    VERIFICATION = "VERIFICATION" # проверка оплаты переводом
    CLEAR_POOL = "CLEAR_POOL"     # полная очистка пула (новый день)


# Ресурс → роли, которым разрешён доступ
RESOURCE_ROLES = {
    Resource.ORDERS: [ProfileRole.STAFF, ProfileRole.ADMIN],
    Resource.PREPARED: [ProfileRole.STAFF, ProfileRole.ADMIN],
    Resource.FIFO: [ProfileRole.STAFF, ProfileRole.ADMIN],
    Resource.VERIFICATION: [ProfileRole.STAFF, ProfileRole.ADMIN],
    Resource.CLEAR_POOL: [ProfileRole.STAFF, ProfileRole.ADMIN],
}


def _parse_role(role: str) -> Optional[ProfileRole]:
    try:
        return ProfileRole(role)
    except ValueError:
        return None


def can_access_resource(role: str, resource: Resource) -> bool:
    """Проверка: есть ли у роли доступ к ресурсу."""
    r = _parse_role(role)
    if r is None:
        return False
    return r in RESOURCE_ROLES.get(resource, [])


def allowed_resources(role: str) -> List[str]:
    return [res.value for res in Resource if can_access_resource(role, res)]
