from fastapi import APIRouter

from timesheets.api.stats import stats_router
from timesheets.api.time_entries import time_entries_router

api_router = APIRouter()
api_router.include_router(time_entries_router)
api_router.include_router(stats_router)
