from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import AsyncIterator, Dict

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field

from ..sim.core.config import AppConfig, SimulationConfig
from ..sim.core.world import World

logger = logging.getLogger(__name__)

MAX_BACKLOG_FRAMES = 120


@dataclass(frozen=True)
class FramePacket:
    tick: int
    payload: str


class SpeedRequest(BaseModel):
    multiplier: float = 1.0


class ResizeRequest(BaseModel):
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class SimulationController:
    """Drives a :class:`World` on a timer and fans frames out to viewers.

    Each viewer maps to the last tick it was sent. Frames are only kept while
    at least one viewer is attached, and the backlog is bounded so a stalled
    viewer cannot grow memory without limit.
    """

    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1, backlog: int = MAX_BACKLOG_FRAMES):
        self.config = config
        self.world = World(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.viewers: Dict[WebSocket, int] = {}
        self._backlog: deque[FramePacket] = deque(maxlen=max(1, backlog))
        self._world_lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None

    @property
    def backlog_ticks(self) -> list[int]:
        return [packet.tick for packet in self._backlog]

    async def start(self) -> None:
        self.running = True
        self._ensure_loop()

    async def stop(self) -> None:
        self.running = False

    async def shutdown(self) -> None:
        self.running = False
        task, self._loop_task = self._loop_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def reset(self) -> None:
        async with self._world_lock:
            self.world.reset()
            self.tick = 0
            self._backlog.clear()
            for viewer in self.viewers:
                self.viewers[viewer] = -1
        logger.info("Flock reset")
        await self.publish()

    async def resize(self, width: float, height: float) -> None:
        async with self._world_lock:
            self.world.resize(width, height)
        await self.publish()

    async def attach(self, viewer: WebSocket) -> None:
        self.viewers[viewer] = -1
        logger.info("Viewer attached (%d total)", len(self.viewers))
        if not self._backlog:
            self._backlog.append(self._pack_frame())
        await self._catch_up(viewer)

    def detach(self, viewer: WebSocket) -> None:
        if self.viewers.pop(viewer, None) is not None:
            logger.info("Viewer detached (%d remaining)", len(self.viewers))
        if not self.viewers:
            self._backlog.clear()

    def acknowledge(self, tick: int) -> None:
        # Keep frames some viewer has not been sent yet.
        floor = min([tick, *self.viewers.values()])
        while self._backlog and self._backlog[0].tick <= floor:
            self._backlog.popleft()

    async def publish(self) -> None:
        if not self.viewers:
            return
        self._backlog.append(self._pack_frame())
        for viewer in list(self.viewers):
            try:
                await self._catch_up(viewer)
            except (WebSocketDisconnect, RuntimeError):
                self.detach(viewer)

    def _ensure_loop(self) -> None:
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.get_running_loop().create_task(self._run_frames())
            self._loop_task.add_done_callback(self._on_loop_done)

    def _on_loop_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return
        logger.error("Frame loop crashed at tick %d", self.tick, exc_info=error)
        if self.running:
            self._ensure_loop()

    async def _run_frames(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if not self.running:
                continue
            async with self._world_lock:
                self.world.step(self.tick)
                self.tick += 1
            if self.tick % self.broadcast_interval == 0:
                await self.publish()

    def _pack_frame(self) -> FramePacket:
        snapshot = self.world.snapshot(self.tick)
        message = {
            "type": "frame",
            "tick": snapshot.tick,
            "world": asdict(snapshot.world),
            "boids": snapshot.boids,
            "metrics": asdict(snapshot.metrics),
            "metadata": asdict(snapshot.metadata),
        }
        return FramePacket(tick=snapshot.tick, payload=json.dumps(message))

    async def _catch_up(self, viewer: WebSocket) -> None:
        last_sent = self.viewers.get(viewer, -1)
        for packet in [packet for packet in self._backlog if packet.tick > last_sent]:
            await viewer.send_text(packet.payload)
            last_sent = packet.tick
        if viewer in self.viewers:
            self.viewers[viewer] = last_sent


app_config = AppConfig()
controller = SimulationController(app_config.simulation, broadcast_interval=app_config.broadcast_interval)
static_dir = Path(__file__).parent / "static"


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    await controller.start()
    yield
    await controller.shutdown()


app = FastAPI(title="Flocking Simulation", lifespan=lifespan)


@app.get("/")
async def index() -> FileResponse:
    return FileResponse(static_dir / "index.html")


@app.get("/api/status")
async def status() -> JSONResponse:
    world = controller.world
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "speed": controller.speed_multiplier,
            "viewers": len(controller.viewers),
            "flock_size": len(world.boids),
            "world": {"width": world.world_size.width, "height": world.world_size.height},
            "metrics": asdict(world.metrics) if world.metrics is not None else None,
        }
    )


@app.post("/api/control/speed")
async def set_speed(request: SpeedRequest) -> JSONResponse:
    controller.speed_multiplier = max(0.1, min(5.0, request.multiplier))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.post("/api/control/resize")
async def resize_world(request: ResizeRequest) -> JSONResponse:
    await controller.resize(request.width, request.height)
    return JSONResponse({"width": request.width, "height": request.height})


@app.post("/api/control/{action}")
async def control(action: str) -> JSONResponse:
    if action == "start":
        await controller.start()
    elif action == "stop":
        await controller.stop()
    elif action == "reset":
        await controller.reset()
    else:
        raise HTTPException(status_code=404, detail=f"Unknown control action: {action}")
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    await controller.attach(websocket)
    try:
        while True:
            try:
                message = json.loads(await websocket.receive_text())
            except json.JSONDecodeError:
                continue
            if not isinstance(message, dict) or message.get("type") != "ack":
                continue
            tick = message.get("tick")
            if isinstance(tick, int):
                controller.acknowledge(tick)
    except WebSocketDisconnect:
        controller.detach(websocket)


__all__ = ["app", "controller", "SimulationController"]
