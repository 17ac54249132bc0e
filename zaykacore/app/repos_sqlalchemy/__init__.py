"""SQLAlchemy-backed repository implementations.

This module exposes ``TenantGuard``, a tiny mixin providing assertion
helpers to ensure that repository helpers are always scoped to a specific
restaurant. Every row on the device carries its owner's ``restaurant_id``
and the guard refuses blank tenants and records owned by someone else.
"""

from ..exceptions import NotAuthenticated, TenantMismatch


class TenantGuard:
    """Utility mixin providing tenant scoping assertions."""

    @staticmethod
    def assert_tenant(tenant_id: str | None) -> str:
        """Return ``tenant_id`` stripped, or raise if it is blank.

        Raises
        ------
        NotAuthenticated
            If ``tenant_id`` is empty.
        """

        if not tenant_id or not str(tenant_id).strip():
            raise NotAuthenticated("tenant_id required")
        return str(tenant_id).strip()

    @staticmethod
    def assert_owned(record: object, tenant_id: str) -> None:
        """Ensure ``record`` belongs to ``tenant_id``, claiming unowned rows.

        Raises
        ------
        TenantMismatch
            If the record is stamped with a different ``restaurant_id``.
        """

        if not hasattr(record, "restaurant_id"):
            return
        owner = getattr(record, "restaurant_id")
        if owner is None:
            record.restaurant_id = tenant_id
        elif owner != tenant_id:
            raise TenantMismatch("tenant mismatch")


from .store_sql import LocalStore  # noqa: E402

__all__ = ["TenantGuard", "LocalStore"]
