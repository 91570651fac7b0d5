# main.py
import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from canteen.core.config import settings
from canteen.core.database import init_db
from canteen.core.errors import CanteenError, StoreUnavailable
from canteen.core.logging_config import setup_logging
from canteen.api.endpoints import menu, payment_accounts, reservations, topups, wallets

setup_logging()
logger = logging.getLogger("canteen")

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="School canteen ordering: menu, reservations, wallet top-ups",
    version="1.0"
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CanteenError)
async def canteen_error_handler(request: Request, exc: CanteenError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(OperationalError)
async def store_error_handler(request: Request, exc: OperationalError):
    logger.error(f"{request.method} {request.url.path} store failure: {exc}")
    error = StoreUnavailable()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# Student-facing routers
app.include_router(menu.router, prefix="/menu", tags=["Menu"])
app.include_router(reservations.router, prefix="/reservations", tags=["Reservations"])
app.include_router(topups.router, prefix="/topups", tags=["Topups"])
app.include_router(wallets.router, prefix="/wallets", tags=["Wallets"])
app.include_router(payment_accounts.router, prefix="/payment-accounts", tags=["Payment Accounts"])

# Admin routers
app.include_router(menu.admin_router, prefix="/admin/menu", tags=["Admin"])
app.include_router(reservations.admin_router, prefix="/admin/reservations", tags=["Admin"])
app.include_router(topups.admin_router, prefix="/admin/topups", tags=["Admin"])
app.include_router(wallets.admin_router, prefix="/admin/wallets", tags=["Admin"])
app.include_router(payment_accounts.admin_router, prefix="/admin/payment-accounts", tags=["Admin"])


@app.get("/")
def read_root():
    return {"status": "Canteen API online"}

if __name__ == "__main__":
    init_db()
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
