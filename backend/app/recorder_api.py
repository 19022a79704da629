"""
Recorder API

Control endpoints for capture, persistence and replay, plus a WebSocket
stream of engine notifications.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from replay_engine import (
    EngineConfig,
    EngineError,
    NotFoundError,
    RecordingService,
    ReplayBusyError,
    ValidationError,
)

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api/recorder", tags=["Recorder"])


class WebSocketBroadcaster:
    """
    Notification sink that streams events to WebSocket clients.

    Capture notifications can be emitted from the event source thread, so
    sends are handed over to the server loop with call_soon_threadsafe.
    """

    def __init__(self):
        self.connections: List[WebSocket] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: Set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self._loop = asyncio.get_running_loop()
        self.connections.append(websocket)

    def disconnect(self, websocket: WebSocket):
        if websocket in self.connections:
            self.connections.remove(websocket)

    def emit(self, kind: str, payload: Dict[str, Any]) -> None:
        loop = self._loop
        if not self.connections or loop is None or loop.is_closed():
            return
        message = {"event": kind, "payload": payload}
        loop.call_soon_threadsafe(self._schedule, message)

    def _schedule(self, message: Dict[str, Any]):
        task = asyncio.ensure_future(self.broadcast(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def broadcast(self, message: Dict[str, Any]):
        for ws in list(self.connections):
            try:
                await ws.send_json(message)
            except Exception as e:
                logger.debug(f"Dropping WebSocket client: {e}")
                self.disconnect(ws)


# Global instances
_broadcaster = WebSocketBroadcaster()
_service: Optional[RecordingService] = None


def get_broadcaster() -> WebSocketBroadcaster:
    return _broadcaster


def get_service() -> RecordingService:
    """Get or create the recording service instance"""
    global _service
    if _service is None:
        _service = RecordingService(config=EngineConfig.from_env(), sink=_broadcaster)
        _service.connect()
    return _service


def shutdown_service():
    """Tear down the recording service, if one was created"""
    global _service
    if _service is not None:
        _service.shutdown()
        _service = None


def _http_error(e: EngineError) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, ReplayBusyError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


# ==================== Request Models ====================

class SaveRequest(BaseModel):
    """Explicit save of the current buffer"""
    filename: Optional[str] = None


class ExecuteRequest(BaseModel):
    """Replay request; no filename replays the current buffer"""
    filename: Optional[str] = None


class ExcludeSelfRequest(BaseModel):
    exclude: bool


class ExclusionRequest(BaseModel):
    identity: str


# ==================== Capture ====================

@router.post("/start")
async def start_recording(service: RecordingService = Depends(get_service)):
    """Start a new recording session"""
    service.start_recording()
    return {"success": True, "status": service.status()}


@router.post("/stop")
async def stop_recording(service: RecordingService = Depends(get_service)):
    """Stop the session and auto-save it"""
    was_recording = service.status()["isRecording"]
    filename = service.stop_recording()
    return {
        "success": was_recording,
        "filename": filename,
        "status": service.status(),
    }


@router.post("/pause")
async def pause_resume_recording(service: RecordingService = Depends(get_service)):
    """Toggle pause on the active session"""
    service.pause_resume_recording()
    return {"success": True, "status": service.status()}


@router.get("/status")
async def get_status(service: RecordingService = Depends(get_service)):
    """Snapshot of capture and replay state"""
    return service.status()


@router.post("/actions")
async def record_action(raw_event: Dict[str, Any], service: RecordingService = Depends(get_service)):
    """Push one raw interaction event"""
    action = service.record_action(raw_event)
    return {
        "recorded": action is not None,
        "action": action.to_record() if action is not None else None,
        "actionCount": service.status()["actionCount"],
    }


@router.get("/actions")
async def get_actions(service: RecordingService = Depends(get_service)):
    """Actions of the current (or last) session"""
    return [action.to_record() for action in service.current_actions()]


# ==================== Recordings ====================

@router.post("/save")
async def save_recording(request: SaveRequest, service: RecordingService = Depends(get_service)):
    """Save the current buffer under an optional name"""
    try:
        filename = service.save_recording(request.filename)
    except EngineError as e:
        raise _http_error(e)

    if filename is None:
        raise HTTPException(status_code=400, detail="Nothing was saved")
    return {"success": True, "filename": filename}


@router.get("/recordings")
async def list_recordings(service: RecordingService = Depends(get_service)):
    """List stored recordings"""
    try:
        return {"recordings": service.list_recordings()}
    except EngineError as e:
        raise _http_error(e)


@router.get("/recordings/{filename}")
async def get_recording(filename: str, service: RecordingService = Depends(get_service)):
    """Load a stored recording document"""
    try:
        recording = service.load_recording(filename)
    except EngineError as e:
        raise _http_error(e)
    return recording.to_document()


@router.delete("/recordings/{filename}")
async def delete_recording(filename: str, service: RecordingService = Depends(get_service)):
    """Delete a stored recording"""
    try:
        deleted = service.delete_recording(filename)
    except EngineError as e:
        raise _http_error(e)

    if not deleted:
        raise HTTPException(status_code=404, detail=f"Recording not found: {filename}")
    return {"success": True, "filename": filename}


# ==================== Replay ====================

@router.post("/execute")
async def execute_recording(request: ExecuteRequest, service: RecordingService = Depends(get_service)):
    """
    Start replaying a stored recording, or the current buffer.

    Progress is streamed over the events WebSocket.
    """
    try:
        service.start_execution(request.filename)
    except EngineError as e:
        raise _http_error(e)
    return {"success": True, "filename": request.filename, "status": service.status()}


@router.post("/execute/cancel")
async def cancel_execution(service: RecordingService = Depends(get_service)):
    """Cancel the running replay"""
    if not service.cancel_execution():
        return {"success": False, "message": "No replay is currently running"}
    return {"success": True, "message": "Cancellation requested"}


# ==================== Exclusions ====================

@router.put("/exclusions/self")
async def set_exclude_self(request: ExcludeSelfRequest, service: RecordingService = Depends(get_service)):
    """Toggle exclusion of the engine's own identity"""
    service.set_exclude_own_app(request.exclude)
    return service.status()


@router.post("/exclusions")
async def add_exclusion(request: ExclusionRequest, service: RecordingService = Depends(get_service)):
    """Exclude an event source from capture"""
    if not request.identity.strip():
        raise HTTPException(status_code=422, detail="identity must not be empty")
    service.add_excluded_package(request.identity.strip())
    return service.status()


@router.delete("/exclusions/{identity}")
async def remove_exclusion(identity: str, service: RecordingService = Depends(get_service)):
    """Stop excluding an event source"""
    service.remove_excluded_package(identity)
    return service.status()


# ==================== WebSocket for Notifications ====================

@router.websocket("/ws/events")
async def websocket_events(websocket: WebSocket):
    """WebSocket endpoint streaming engine notifications"""
    broadcaster = get_broadcaster()
    await broadcaster.connect(websocket)

    try:
        while True:
            # Keep connection alive
            await websocket.receive_text()
    except WebSocketDisconnect:
        broadcaster.disconnect(websocket)
