from fastapi import APIRouter

from funnel_analytics.api.routes import analytics, forecast

api_router = APIRouter()
api_router.include_router(analytics.router)
api_router.include_router(forecast.router)
