from fastapi import APIRouter

from src.simflow.api.v1 import analytics, audit, auth, notifications, projects, requests, users

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(requests.router)
api_router.include_router(projects.router)
api_router.include_router(notifications.router)
api_router.include_router(audit.router)
api_router.include_router(analytics.router)
