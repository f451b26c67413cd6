from __future__ import annotations

from django.contrib.auth.backends import BaseBackend

from marketplace.authorization import PERMISSIONS, has_permission


class PermissionTableBackend(BaseBackend):
    """Answer object-level `user.has_perm(name, obj)` from the permission table.

    Only names registered in the table are handled; anything else falls through
    to the other configured backends.
    """

    def has_perm(self, user_obj, perm, obj=None):
        if perm not in PERMISSIONS:
            return False
        if not getattr(user_obj, "is_active", False):
            return False
        return has_permission(user_obj, obj, perm)
