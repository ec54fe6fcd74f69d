from fastapi import APIRouter
from scorecard_remediation.api.v1 import scorecards

api_router = APIRouter()

api_router.include_router(scorecards.router, tags=["scorecards"])
