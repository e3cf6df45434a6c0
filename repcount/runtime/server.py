from __future__ import annotations
import asyncio
import json
import logging
from typing import List, Optional, Set, Union

from fastapi import Depends, FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from repcount.common.errors import FrameFormatError, UnknownExerciseError
from repcount.config import configure_logging, load_settings
from repcount.counter.profiles import EXERCISES
from repcount.counter.session import RepSessionManager
from repcount.counter.sources import parse_joint_set
from repcount.data.db import SQLiteRecorder

logger = logging.getLogger(__name__)

app = FastAPI(title="repcount")


class LandmarkIn(BaseModel):
    x: float
    y: float
    visibility: Optional[float] = Field(None, ge=0.0, le=1.0)


class FrameIn(BaseModel):
    type: str = "frame"
    landmarks: List[Optional[Union[LandmarkIn, List[Optional[float]]]]] = Field(default_factory=list)


class SelectArgs(BaseModel):
    exercise: str = Field(..., description="Exercise key from /exercises")


WS_CLIENTS: Set[WebSocket] = set()

_MANAGER: Optional[RepSessionManager] = None


def get_manager() -> RepSessionManager:
    global _MANAGER
    if _MANAGER is None:
        settings = load_settings()
        configure_logging(settings.log_level)
        _MANAGER = RepSessionManager(
            recorder=SQLiteRecorder(settings.db_path),
            exercise=settings.default_exercise,
            visibility_min=settings.visibility_min,
            window=settings.smoothing_window,
        )
        _MANAGER.set_event_sink(_sink)
    return _MANAGER


# let the manager push events to all WS clients
def _sink(ev: dict):
    try:
        asyncio.get_running_loop().create_task(broadcast(ev))
    except RuntimeError:
        logger.debug("no running loop, dropped %s event", ev.get("type"))


async def broadcast(obj: dict):
    dead = []
    for ws in list(WS_CLIENTS):
        try:
            await ws.send_text(json.dumps(obj))
        except Exception:
            dead.append(ws)
    for d in dead:
        WS_CLIENTS.discard(d)


def _history(m: RepSessionManager):
    rec = m.recorder
    if rec is None or not hasattr(rec, "load_sessions"):
        raise HTTPException(status_code=501, detail="session history not available")
    return rec


@app.get("/exercises")
async def exercises():
    return [
        {
            "key": p.key,
            "label": p.label,
            "joints": list(p.joints),
            "up_threshold": p.up_threshold,
            "down_threshold": p.down_threshold,
            "hold_frames": p.hold_frames,
            "hint": p.hint,
            "form_rules": [r.name for r in p.form_rules],
        }
        for p in EXERCISES.values()
    ]


@app.get("/sessions/current")
async def current(m: RepSessionManager = Depends(get_manager)):
    st = m.status()
    return {"exercise": st.exercise, "stage": st.stage, "count": st.count, "angle": st.angle}


@app.post("/exercise/select")
async def select(args: SelectArgs, m: RepSessionManager = Depends(get_manager)):
    try:
        changed = m.select_exercise(args.exercise)
    except UnknownExerciseError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"exercise": m.exercise, "changed": changed}


@app.post("/exercise/cycle")
async def cycle(step: int = Query(1), m: RepSessionManager = Depends(get_manager)):
    return {"exercise": m.cycle_exercise(step)}


@app.post("/counter/reset")
async def reset(m: RepSessionManager = Depends(get_manager)):
    rec = m.reset()
    return JSONResponse({"record": rec.to_dict() if rec else None})


@app.get("/sessions")
async def sessions(exercise: Optional[str] = None, m: RepSessionManager = Depends(get_manager)):
    return [r.to_dict() for r in _history(m).load_sessions(exercise)]


@app.delete("/sessions")
async def clear_sessions(m: RepSessionManager = Depends(get_manager)):
    rec = _history(m)
    removed = len(rec.load_sessions())
    rec.clear()
    return {"cleared": removed}


@app.get("/sessions/totals")
async def totals(m: RepSessionManager = Depends(get_manager)):
    return _history(m).totals_by_exercise()


@app.websocket("/ws/frames")
async def ws_frames(ws: WebSocket, m: RepSessionManager = Depends(get_manager)):
    await ws.accept()
    WS_CLIENTS.add(ws)
    logger.info("ws: client connected (%d total)", len(WS_CLIENTS))
    try:
        while True:
            raw = await ws.receive_text()
            try:
                frame = FrameIn.model_validate_json(raw)
                if frame.type != "frame":
                    continue
                joints = parse_joint_set([
                    lm.model_dump() if isinstance(lm, LandmarkIn) else lm for lm in frame.landmarks
                ])
            except (ValidationError, FrameFormatError) as e:
                await ws.send_json({"type": "error", "msg": str(e)})
                continue
            res = m.process_frame(joints)
            await ws.send_json({"type": "frame", **res.to_dict()})
    except WebSocketDisconnect:
        pass
    finally:
        WS_CLIENTS.discard(ws)
        logger.info("ws: client closed (%d left)", len(WS_CLIENTS))
