from fastapi import APIRouter

from ghoste.api.routes import credits, health

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(credits.router, prefix="/credits", tags=["credits"])
