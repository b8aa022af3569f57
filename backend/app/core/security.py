ADMIN_ROLE = "admin"


def is_owner(user_id: str | None, resource_owner_id: str | None) -> bool:
    """Пользователь является владельцем ресурса (анонимный не бывает)"""
    if not user_id or not resource_owner_id:
        return False
    return str(user_id) == str(resource_owner_id)


def is_admin(role: str | None) -> bool:
    return role == ADMIN_ROLE


def can_view(user_id: str | None, role: str | None, resource_owner_id: str | None) -> bool:
    """Читать ресурс может владелец или админ"""
    return is_admin(role) or is_owner(user_id, resource_owner_id)

