import logging
from fastapi import FastAPI
from roomsplit.config import settings
from roomsplit.db.database import Base, engine, check_db_connection
from roomsplit.api.v1.routes.households import router as households_router
from roomsplit.api.v1.routes.expenses import router as expenses_router
from roomsplit.api.v1.routes.settlements import router as settlements_router
from roomsplit.api.v1.routes.reports import router as reports_router
from roomsplit.api.v1.routes.qr_codes import router as qr_codes_router
from roomsplit.models import payment_statuses, qr_codes  # noqa: F401  registers tables

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Roomsplit - Household Expense Sharing",
    description="Manages households, rooms, roommates, shared expenses and settlements",
    version="1.0.0"
)

app.include_router(households_router)
app.include_router(expenses_router)
app.include_router(settlements_router)
app.include_router(reports_router)
app.include_router(qr_codes_router)

@app.get("/")
def read_root():
    return {"message": "Roomsplit API", "version": "1.0.0"}

@app.get("/health")
def health_check():
    return {"status": "healthy" if check_db_connection() else "degraded"}
