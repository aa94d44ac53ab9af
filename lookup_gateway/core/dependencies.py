from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from lookup_gateway.core.config import settings
from lookup_gateway.services.gateway import Gateway
from lookup_gateway.storage.base import BlobStore

admin_key_header = APIKeyHeader(name="X-Admin-Key", auto_error=False)


def get_gateway(request: Request) -> Gateway:
    return request.app.state.gateway


GatewayDependency = Annotated[Gateway, Depends(get_gateway)]


def get_blob_store(gateway: GatewayDependency) -> BlobStore | None:
    return gateway.store


BlobStoreDependency = Annotated[BlobStore | None, Depends(get_blob_store)]


async def require_admin_key(api_key: Annotated[str | None, Security(admin_key_header)]):
    # Admin routes stay open when no key is configured
    if settings.ADMIN_API_KEY and api_key != settings.ADMIN_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin key",
        )
