# main.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import LOG_LEVEL
from errors import ValidationError
from models import SettlementResult
from reward_routes import router as reward_router
from state_routes import router as state_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Kleo Rewards & State API", version="0.1.0")
app.include_router(reward_router)
app.include_router(state_router)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # the rejected input is not echoed back; it may not be JSON-serializable (inf, nan)
    reason = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    )
    logger.warning("Request body rejected: %s %s", request.url.path, reason)
    if request.url.path.startswith(reward_router.prefix):
        result = SettlementResult.rejected(ValidationError.kind, reason)
        return JSONResponse(result.to_response(), status_code=ValidationError.http_status)
    return JSONResponse({"detail": reason}, status_code=422)


@app.get("/healthz")
def healthz():
    return {"ok": "true"}
