#!/usr/bin/env python3
"""
manager.py – REST control surface + process entry-point
-------------------------------------------------------
Runs the engine inside uvicorn's event loop, so REST handlers, the tick
source, the advisory poller and the supervisor all share one loop.

Environment
-----------
API_HOST         bind address                (default: 0.0.0.0)
API_PORT         REST port                   (default: 8000)
AUTOSTART        start trading on boot       (default: 0)
+ everything read by BotSettings / EngineConfig (see shared.config)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from decision_service.engine import Engine, SettingsLocked
from shared.config  import BotSettings, EngineConfig, env
from shared.logging import get_logger

# ───── CONFIG ──────────────────────────────────────────────────────────
API_HOST  = env("API_HOST", "0.0.0.0")
API_PORT  = env("API_PORT", 8000, int)
AUTOSTART = env("AUTOSTART", False, bool)

log = get_logger("trade_manager")


class SettingsPatch(BaseModel):
    stake: Optional[float] = None
    take_profit: Optional[float] = None
    stop_loss: Optional[float] = None
    asset: Optional[str] = None
    strategy: Optional[str] = None
    credential: Optional[str] = None


def create_app(engine: Optional[Engine] = None, autostart: bool = False) -> FastAPI:
    """Build the API around *engine* (a fresh env-configured one by default)."""
    eng = engine or Engine(BotSettings.from_env(), EngineConfig.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        eng.start_supervisor()
        if autostart:
            await eng.start()
        log.info("trade_manager up – state=%s", eng.state.value)
        yield
        await eng.shutdown()
        log.info("trade_manager down – balance=%.2f", eng.book.balance)

    app = FastAPI(title="Scalp Engine", docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.engine = eng

    @app.get("/status")
    async def status():
        return eng.status()

    @app.get("/trades")
    async def trades():
        return [t.to_dict() for t in eng.book.history]

    @app.get("/stats")
    async def stats():
        return eng.book.summary()

    @app.post("/start")
    async def start():
        started = await eng.start()
        return {"state": eng.state.value, "changed": started}

    @app.post("/stop")
    async def stop():
        stopped = await eng.stop()
        return {"state": eng.state.value, "changed": stopped}

    @app.put("/settings")
    async def update_settings(patch: SettingsPatch):
        try:
            settings = await eng.update_settings(**patch.model_dump(exclude_none=True))
        except SettingsLocked as exc:
            raise HTTPException(status_code=409, detail=str(exc))
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc))
        return settings.to_dict()

    return app


def main() -> None:
    app = create_app(autostart=AUTOSTART)
    uvicorn.run(app, host=API_HOST, port=API_PORT, log_level="warning")


if __name__ == "__main__":
    main()
