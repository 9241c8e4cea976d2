from fastapi import APIRouter

from leavequota.api.leaves import leaves_router
from leavequota.api.policies import policies_router

api_router = APIRouter()
api_router.include_router(leaves_router)
api_router.include_router(policies_router)
