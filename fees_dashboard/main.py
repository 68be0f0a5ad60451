from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fees_dashboard.api.routers.fee_series import router as fee_series_router


app = FastAPI(title="Crypto Fees API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(fee_series_router)
