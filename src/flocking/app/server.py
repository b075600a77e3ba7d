from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from ..sim.core.config import AppConfig, ConfigError, SimulationConfig
from ..sim.core.world import World

logger = logging.getLogger(__name__)

# Snapshots kept for clients that have not acknowledged them yet.
SNAPSHOT_BACKLOG = 64


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1):
        self.config = config
        self.world = World(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=SNAPSHOT_BACKLOG)
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
            self.tick = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def restart(self) -> None:
        async with self._lock:
            self.world.restart()
        await self._broadcast_snapshot()

    async def update_params(self, changes: Dict[str, Any]) -> List[str]:
        # Applied under the tick lock so a tick never sees a half-applied edit.
        async with self._lock:
            changed = self.world.params.apply_update(changes)
        if changed:
            logger.info("Parameters changed: %s", ", ".join(changed))
        return changed

    async def set_pointer(self, position: Optional[List[float]], control: Optional[str]) -> None:
        async with self._lock:
            self.world.set_pointer(position, control)

    async def resize(self, width: float, height: float) -> None:
        if width <= 0 or height <= 0:
            raise ConfigError(f"Viewport extent must be positive, got {width}x{height}")
        async with self._lock:
            self.world.request_resize(width, height)

    async def _loop(self) -> None:
        dt = self.config.time_step
        while True:
            await asyncio.sleep(dt / self.speed_multiplier)
            if not self.running:
                continue
            async with self._lock:
                self.world.step(self.tick, dt)
                self.tick += 1
            if self.tick % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    async def handle_message(self, message: str) -> None:
        try:
            payload = json.loads(message)
        except json.JSONDecodeError:
            logger.debug("Ignoring malformed websocket message")
            return
        if not isinstance(payload, dict):
            return
        kind = payload.get("type")
        try:
            if kind == "ack":
                tick = payload.get("tick")
                if isinstance(tick, int):
                    await self.acknowledge(tick)
            elif kind == "pointer":
                position = payload.get("position")
                if position is not None and not isinstance(position, list):
                    raise TypeError("pointer position must be a list")
                await self.set_pointer(position, payload.get("control"))
            elif kind == "resize":
                await self.resize(float(payload["width"]), float(payload["height"]))
            elif kind == "params":
                values = payload.get("values", {})
                if not isinstance(values, dict):
                    raise TypeError("params values must be an object")
                await self.update_params(values)
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Rejected %s message: %s", kind, exc)

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.world.snapshot(self.tick)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "boids": snapshot.boids,
                "world": asdict(snapshot.world),
                "metadata": asdict(snapshot.metadata),
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
app = FastAPI(title="Flocking Simulation")
controller = SimulationController(app_config.simulation, broadcast_interval=app_config.broadcast_interval)
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
    snapshot = controller.world.snapshot(controller.tick)
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "population": len(controller.world.boids),
            "metrics": asdict(snapshot.metrics),
        }
    )


@app.get("/api/params")
async def get_params() -> JSONResponse:
    return JSONResponse(asdict(controller.world.params))


@app.post("/api/params")
async def set_params(payload: dict) -> JSONResponse:
    try:
        changed = await controller.update_params(payload)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return JSONResponse({"changed": changed, "params": asdict(controller.world.params)})


@app.post("/api/pointer")
async def set_pointer(payload: dict) -> JSONResponse:
    try:
        await controller.set_pointer(payload.get("position"), payload.get("control"))
    except (IndexError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return JSONResponse({"active": controller.world.pointer.active})


@app.post("/api/resize")
async def resize(payload: dict) -> JSONResponse:
    try:
        await controller.resize(float(payload["width"]), float(payload["height"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return JSONResponse({"width": payload["width"], "height": payload["height"]})


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


@app.post("/api/control/restart")
async def restart_simulation() -> JSONResponse:
    await controller.restart()
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
    try:
        await controller._send_pending_snapshots(websocket)
        while True:
            message = await websocket.receive_text()
            await controller.handle_message(message)
    except WebSocketDisconnect:
        logger.debug("Websocket client disconnected")
    finally:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller"]
