from fastapi import APIRouter

from leave_engine.api.balances import trainer_balance_router
from leave_engine.api.jobs import jobs_router
from leave_engine.api.requests import leaves_router, trainer_leaves_router

api_router = APIRouter()
api_router.include_router(trainer_leaves_router)
api_router.include_router(leaves_router)
api_router.include_router(trainer_balance_router)
api_router.include_router(jobs_router)
