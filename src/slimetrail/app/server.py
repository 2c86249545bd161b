from __future__ import annotations

import asyncio
import base64
import json
import logging
import zlib
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from ..sim.core.config import AppConfig, ConfigurationError, SimulationConfig
from ..sim.core.engine import SimulationEngine
from .render import render_field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


def encode_frame(engine: SimulationEngine) -> Dict[str, Any]:
    rgb = render_field(engine.field, engine.config.tint)
    height, width = rgb.shape[:2]
    return {
        "width": width,
        "height": height,
        "encoding": "rgb8+zlib+base64",
        "data": base64.b64encode(zlib.compress(rgb.tobytes(), 1)).decode("ascii"),
    }


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1, tick_interval: float = 1.0 / 60.0):
        self.config = config
        self.engine = SimulationEngine(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.tick_interval = max(1e-3, tick_interval)
        self.running = False
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque()
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None

    @property
    def tick(self) -> int:
        return self.engine.tick_count

    async def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.engine.reset()
        await self._restart_stream()

    async def reconfigure(self, overrides: Dict[str, Any]) -> SimulationConfig:
        """Start a new run with ``overrides`` applied to the current config.

        Invalid parameters raise ``ConfigurationError`` and leave the running
        simulation untouched.
        """
        new_config = self.config.with_overrides(overrides)
        async with self._lock:
            self.engine.reconfigure(new_config)
            self.config = new_config
        logger.info("Reconfigured simulation: %s", sorted(overrides))
        await self._restart_stream()
        return new_config

    async def _restart_stream(self) -> None:
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval / self.speed_multiplier)
            if not self.running:
                continue
            async with self._lock:
                self.engine.tick()
            if self.tick % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.engine.snapshot()
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "metadata": asdict(snapshot.metadata),
                "attractor": asdict(snapshot.attractor),
                "frame": encode_frame(self.engine),
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


app_config = AppConfig()
app = FastAPI(title="Slime Trail Simulation")
controller = SimulationController(
    app_config.simulation,
    broadcast_interval=app_config.broadcast_interval,
    tick_interval=app_config.tick_interval,
)
static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=static_dir), name="static")


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/")
async def index() -> FileResponse:
    return FileResponse(static_dir / "index.html")


@app.get("/api/status")
async def status() -> JSONResponse:
    snapshot = controller.engine.snapshot()
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "state": controller.engine.state.value,
            "metrics": asdict(snapshot.metrics),
            "attractor": asdict(snapshot.attractor),
        }
    )


@app.get("/api/config")
async def get_config() -> JSONResponse:
    return JSONResponse(controller.config.to_flat())


@app.post("/api/config")
async def update_config(payload: dict) -> JSONResponse:
    try:
        config = await controller.reconfigure(payload)
    except (ConfigurationError, TypeError, ValueError) as exc:
        logger.warning("Rejected configuration %s: %s", payload, exc)
        return JSONResponse({"error": str(exc)}, status_code=422)
    return JSONResponse(config.to_flat())


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    controller.running = True
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    controller.running = False
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if payload.get("type") == "ack":
                tick = payload.get("tick")
                if isinstance(tick, int):
                    await controller.acknowledge(tick)
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller", "encode_frame", "SimulationController"]
