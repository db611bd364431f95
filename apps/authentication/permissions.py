def is_admin(user) -> bool:
    return bool(user and user.is_authenticated and getattr(user, "role", None) == "admin")
