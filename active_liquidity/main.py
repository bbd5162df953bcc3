from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from active_liquidity.api.deps import close_pool_active_liquidity_use_case
from active_liquidity.api.routers.active_liquidity import router as active_liquidity_router
from active_liquidity.shared.config import get_settings
from active_liquidity.shared.logging_config import configure_logging


configure_logging(get_settings().log_level)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    # Stops the tick pollers started by the pool endpoint.
    close_pool_active_liquidity_use_case()


app = FastAPI(title="Active Liquidity API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(active_liquidity_router)
