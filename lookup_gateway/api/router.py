from fastapi import APIRouter

from lookup_gateway.api.endpoints.lookups import router as lookups_router
from lookup_gateway.api.endpoints.storage import router as storage_router

router = APIRouter()
router.include_router(storage_router)
router.include_router(lookups_router)
