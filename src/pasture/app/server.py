from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Dict, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import SimulationConfig, get_tunables
from ..sim.core.world import World
from ..sim.persistence import StateFormatError

logger = logging.getLogger("pasture.server")


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    """Drives the world from a frame loop, advancing one tick every ``tick_divisor`` frames."""

    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1, max_pending: int = 120):
        self.config = config
        self.world = World(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.frame = 0
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=max(1, max_pending))
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
            self.frame = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def advance_frame(self) -> bool:
        """Count one frame; returns True if the world ticked on it."""
        async with self._lock:
            self.frame += 1
            if self.frame % max(1, self.config.tick_divisor) != 0:
                return False
            self.world.step()
        return True

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(1.0 / (self.config.frame_rate * self.speed_multiplier))
            if not self.running:
                continue
            ticked = await self.advance_frame()
            if ticked and self.world.tick % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    async def update_tunables(self, values: Dict[str, Any]) -> Dict[str, float]:
        async with self._lock:
            return self.world.update_tunables(**values)

    async def export_state(self) -> Dict[str, Any]:
        async with self._lock:
            return self.world.export_state()

    async def import_state(self, payload: Dict[str, Any]) -> None:
        async with self._lock:
            self.world.restore(payload)
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.world.snapshot()
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "stats": asdict(snapshot.stats),
                "agents": snapshot.agents,
                "world": asdict(snapshot.world),
                "metadata": asdict(snapshot.metadata),
                "fields": asdict(snapshot.fields),
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
        # Unacknowledged snapshots are capped by the queue length; with no listeners nothing is kept.
        if not self.clients:
            return
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


app = FastAPI(title="Pasture Simulation")
controller = SimulationController(SimulationConfig())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    stats = controller.world.statistics()
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.world.tick,
            "frame": controller.frame,
            "stats": asdict(stats),
        }
    )


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
    return JSONResponse({"running": controller.running, "tick": controller.world.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.get("/api/tunables")
async def read_tunables() -> JSONResponse:
    return JSONResponse(get_tunables(controller.config))


@app.post("/api/tunables")
async def write_tunables(payload: dict) -> JSONResponse:
    try:
        values = await controller.update_tunables(payload)
    except KeyError as exc:
        raise HTTPException(status_code=422, detail=f"Unknown tunable: {exc.args[0]}") from exc
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return JSONResponse(values)


@app.get("/api/state")
async def export_state() -> JSONResponse:
    return JSONResponse(await controller.export_state())


@app.post("/api/state")
async def import_state(payload: dict) -> JSONResponse:
    try:
        await controller.import_state(payload)
    except StateFormatError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return JSONResponse({"tick": controller.world.tick})


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
        logger.debug("websocket client disconnected")


__all__ = ["app", "controller", "main"]


def main() -> None:
    import argparse

    import uvicorn

    parser = argparse.ArgumentParser(description="Serve the pasture simulation over HTTP and websockets")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
