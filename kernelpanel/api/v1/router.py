from fastapi import APIRouter

from kernelpanel.api.v1.endpoints import (
    analytics,
    audit,
    auth,
    countries,
    health,
    hosts,
    kernels,
    panel_settings,
    server_nodes,
    subscription,
    users,
)

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(kernels.router)
api_router.include_router(users.router)
api_router.include_router(subscription.router)
api_router.include_router(hosts.router)
api_router.include_router(server_nodes.router)
api_router.include_router(panel_settings.router)
api_router.include_router(countries.router)
api_router.include_router(analytics.router)
api_router.include_router(audit.router)
