from fastapi import Header, Request

from ..obs.logging import tenant_ctx

"""Dependency helpers for tenant resolution."""


async def get_tenant_id(
    request: Request, x_tenant_id: str | None = Header(default=None)
) -> str:
    """Return the restaurant id from the ``X-Tenant-ID`` header.

    The restaurant must have an active session on the device. The id is
    also bound to the logging context for the rest of the request.

    Raises:
        NotAuthenticated: If the header is missing or the restaurant is not
            logged in.
    """
    tenant_id = request.app.state.sessions.require(x_tenant_id)
    tenant_ctx.set(tenant_id)
    return tenant_id
