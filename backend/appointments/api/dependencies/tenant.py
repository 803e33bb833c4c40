# backend/appointments/api/dependencies/tenant.py
"""Tenant resolution for tenant-scoped endpoints."""

from fastapi import Header, HTTPException, status

TENANT_HEADER = "X-Tenant-ID"


def get_tenant_id(x_tenant_id: str = Header(..., alias=TENANT_HEADER)) -> str:
    """
    Resolve the calling tenant from the X-Tenant-ID header.

    Authentication sits in front of this service; the header is trusted.
    """
    tenant_id = x_tenant_id.strip()
    if not tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"{TENANT_HEADER} header is required"
        )
    return tenant_id
