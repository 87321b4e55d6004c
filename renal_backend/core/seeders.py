from django.contrib.auth import get_user_model
from django.db import transaction

from .models import AuditLog, Role

User = get_user_model()

SEED_EMAIL_DOMAIN = "@seed.local"


def seed_core(flush: bool = False) -> dict:
    """
    Seedet:
    - Rollen (admin, doctor, nurse)
    - Benutzer (ein Admin, Nephrologen, Pflege)

    Wenn flush=True:
        - Löscht AuditLogs
        - Löscht NICHT Superuser
        - Löscht nur Benutzer, deren E-Mail auf '@seed.local' endet
    """
    stats: dict[str, int] = {}

    with transaction.atomic():
        if flush:
            AuditLog.objects.all().delete()
            User.objects.filter(is_superuser=False, email__endswith=SEED_EMAIL_DOMAIN).delete()

        roles = _seed_roles()
        stats["core_roles"] = len(roles)

        users = _seed_users(roles)
        stats["core_users"] = len(users)

    return stats


def _seed_roles() -> dict[str, Role]:
    role_definitions = [
        ("admin", "Administrator"),
        ("doctor", "Nephrologist"),
        ("nurse", "Dialysis nurse"),
    ]

    roles: dict[str, Role] = {}
    for name, label in role_definitions:
        role, _created = Role.objects.get_or_create(name=name, defaults={"label": label})
        roles[name] = role
    return roles


def _get_or_create_user(username, first_name, last_name, role) -> User:
    user = User.objects.filter(username=username).first()
    if user is None:
        user = User.objects.create_user(
            username=username,
            email=f"{username}{SEED_EMAIL_DOMAIN}",
            password="test1234",
            first_name=first_name,
            last_name=last_name,
        )
    user.role = role
    user.save()
    return user


def _seed_users(roles: dict[str, Role]) -> list[User]:
    users: list[User] = []

    # 1. Superuser (falls noch nicht vorhanden)
    if not User.objects.filter(is_superuser=True).exists():
        su = User.objects.create_superuser(
            username="admin",
            email="admin@renal.local",
            password="admin",
        )
        su.role = roles["admin"]
        su.save()
        users.append(su)

    # 2. Nephrologen
    for username, first_name, last_name in [
        ("dr.hassan", "Omar", "Hassan"),
        ("dr.weber", "Julia", "Weber"),
    ]:
        users.append(_get_or_create_user(username, first_name, last_name, roles["doctor"]))

    # 3. Pflege
    for username, first_name, last_name in [
        ("pflege1", "Lisa", "Walter"),
        ("pflege2", "Markus", "Becker"),
    ]:
        users.append(_get_or_create_user(username, first_name, last_name, roles["nurse"]))

    return users
