import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from database import check_connection
from logging_config import configure_logging
from routers import all_routers
from services.exceptions import LedgerImmutableError, PayloadReferenceError

configure_logging(level=config.LOG_LEVEL, json_format=config.LOG_JSON)
logger = logging.getLogger(__name__)

# App instance
app = FastAPI(title="HealthChain Ledger API")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in all_routers:
    app.include_router(router)


@app.exception_handler(LedgerImmutableError)
async def ledger_immutable_handler(request: Request, exc: LedgerImmutableError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(PayloadReferenceError)
async def payload_reference_handler(request: Request, exc: PayloadReferenceError):
    # Calling workflow built a bad entry; a defect, not a user error
    logger.error("Rejected ledger entry: %s", exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/api/health")
def health():
    if not check_connection():
        return JSONResponse(status_code=503, content={"status": "unavailable", "database": "down"})
    return {"status": "ok", "database": "up"}


# 404 Fallback Middleware
@app.middleware("http")
async def not_found_middleware(request: Request, call_next):
    try:
        response = await call_next(request)
        if response.status_code == 404 and request.scope.get("endpoint") is None:
            return JSONResponse(status_code=404, content={"error": "Route not found"})
        return response
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=config.PORT, reload=True)
