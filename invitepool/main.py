import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from invitepool.core.config import CORS_ORIGINS, SEED_ON_STARTUP
from invitepool.core.database import SessionLocal, init_db
from invitepool.core.exceptions import InvitePoolError, TransactionFailure
from invitepool.routes import admin, codes
from invitepool.services.seed import seed_database

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("invitepool.main")

app = FastAPI(title="Invite Pool API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(codes.router)
app.include_router(admin.router)


@app.exception_handler(InvitePoolError)
async def invite_pool_error_handler(request: Request, exc: InvitePoolError):
    if isinstance(exc, TransactionFailure):
        # Details stay in the log; callers get the generic message
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": TransactionFailure.public_message})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.get("/api/health", tags=["health"])
def health() -> dict:
    return {"status": "ok"}


@app.on_event("startup")
def on_startup():
    init_db()
    if not SEED_ON_STARTUP:
        return
    db = SessionLocal()
    try:
        seed_database(db)
    finally:
        db.close()
