"""
deriv_client.py – thin wrapper around the Deriv websocket API
-------------------------------------------------------------
One connection does everything: authorize → subscribe to ticks →
stream `tick` messages into `on_tick`, and send `buy` requests for the
engine.  Broker confirmations (`buy` replies) go to `on_trade` as-is.

The client reconnects on its own (fixed 2 s back-off); the engine only
calls `start()` / `stop()` and `submit_order()`.
"""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from shared.constants import (
    CONTRACT_CURRENCY, CONTRACT_DURATION_TICKS,
    DERIV_PING_SEC, DERIV_RETRY_SEC, DERIV_WS_URL,
)
from shared.logging import get_logger
from shared.models  import Tick, TradeType

log = get_logger("trade_executor.deriv")


@dataclass
class OrderSpec:
    symbol: str
    contract_type: TradeType
    stake: float
    duration: int = CONTRACT_DURATION_TICKS
    currency: str = CONTRACT_CURRENCY

    def to_request(self) -> Dict[str, Any]:
        return {
            "buy": 1,
            "price": self.stake,
            "parameters": {
                "amount": self.stake,
                "basis": "stake",
                "contract_type": self.contract_type.value,
                "currency": self.currency,
                "duration": self.duration,
                "duration_unit": "t",
                "symbol": self.symbol,
            },
        }


class DerivClient:
    """Live tick source + order gateway."""

    name = "deriv"

    def __init__(
        self,
        token: str,
        on_tick: Callable[[Tick], None],
        on_trade: Callable[[Dict[str, Any]], None],
        symbol: str = "R_100",
        url: str = DERIV_WS_URL,
        ping_sec: float = DERIV_PING_SEC,
        retry_sec: float = DERIV_RETRY_SEC,
    ) -> None:
        self.token = token
        self.on_tick = on_tick
        self.on_trade = on_trade
        self.symbol = symbol
        self.url = url
        self.ping_sec = ping_sec
        self.retry_sec = retry_sec
        self.authorized = False
        self._ws: Any = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ───── connection ──────────────────────────────────────────────
    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="deriv-feed")

    connect = start

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._ws = None
        self.authorized = False
        log.info("Deriv feed disconnected")

    disconnect = stop

    async def _run(self) -> None:
        while True:
            try:
                async with websockets.connect(self.url, ping_interval=None) as ws:
                    self._ws = ws
                    log.info("Connected to Deriv WS")
                    await ws.send(json.dumps({"authorize": self.token}))
                    pinger = asyncio.create_task(self._ping(ws))
                    try:
                        async for raw in ws:
                            await self._dispatch(ws, raw)
                    finally:
                        pinger.cancel()
            except ConnectionClosed:
                log.warning("Deriv WS closed – reconnecting in %.0f s", self.retry_sec)
            except (WebSocketException, OSError, asyncio.TimeoutError) as exc:
                log.error("Deriv WS error – %s", exc)
            finally:
                self._ws = None
                self.authorized = False
            await asyncio.sleep(self.retry_sec)

    async def _dispatch(self, ws: Any, raw: Any) -> None:
        """One inbound frame; only a closed socket may escape the read loop."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            log.warning("non-JSON frame dropped")
            return
        if not isinstance(data, dict):
            log.warning("unexpected frame dropped")
            return
        try:
            await self.handle_message(ws, data)
        except ConnectionClosed:
            raise
        except (KeyError, TypeError, ValueError) as exc:
            log.warning("bad %s message – %s", data.get("msg_type"), exc)
        except Exception:                                    # noqa: BLE001
            log.exception("%s handler failed", data.get("msg_type"))

    async def _ping(self, ws: Any) -> None:
        while True:
            await asyncio.sleep(self.ping_sec)
            try:
                await ws.send(json.dumps({"ping": 1}))
            except ConnectionClosed:
                return

    # ───── inbound ────────────────────────────────────────────────
    async def handle_message(self, ws: Any, data: Dict[str, Any]) -> None:
        if data.get("error"):
            log.error("Deriv API error – %s", data["error"].get("message"))
            return

        kind = data.get("msg_type")
        if kind == "authorize":
            self.authorized = True
            log.info("Authorized, subscribing to %s ticks", self.symbol)
            await ws.send(json.dumps({"ticks": self.symbol, "subscribe": 1}))
        elif kind == "tick":
            tick = data["tick"]
            self.on_tick(Tick(time=int(tick["epoch"]) * 1000, price=float(tick["quote"])))
        elif kind == "buy":
            log.info("Trade placed – %s", data.get("buy"))
            self.on_trade(data.get("buy") or {})

    # ───── trading actions ────────────────────────────────────────
    async def submit_order(self, contract_type: TradeType, stake: float) -> bool:
        """Send a `buy`; False when there is no authorized connection."""
        ws = self._ws
        if ws is None or not self.authorized:
            log.warning("BUY %s %.2f skipped – not connected", contract_type.value, stake)
            return False
        spec = OrderSpec(self.symbol, contract_type, stake)
        log.info("BUY %s %s %.2f", spec.symbol, contract_type.value, stake)
        await ws.send(json.dumps(spec.to_request()))
        return True
