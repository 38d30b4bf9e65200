"""
iperf3_statuspage/routers/iperf3.py
Endpoints:
  GET /iperf3   → last cached iperf3 report (JSON)
                  503 "Iperf3 result not available yet." before the first run

Reads from the in-memory store only. Never waits on iperf3.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from iperf3_statuspage.core.config import format_ts
from iperf3_statuspage.core.query import QueryService, ResultStatus

router = APIRouter(tags=["iperf3"])

NOT_AVAILABLE = "Iperf3 result not available yet."


def get_query_service(request: Request) -> QueryService:
    return request.app.state.query_service


@router.get("/iperf3")
async def get_iperf3(request: Request, query: QueryService = Depends(get_query_service)):
    result = query.current_result()
    if not result.available:
        return PlainTextResponse(NOT_AVAILABLE, status_code=503)

    headers = {
        "X-Captured-At": format_ts(result.captured_at, request.app.state.settings.tz),
        "X-Result-Age":  f"{result.age_s:.0f}",
    }
    if result.status is ResultStatus.STALE:
        headers["X-Result-Stale"] = "true"
    return JSONResponse(result.report.model_dump(mode="json"), headers=headers)
