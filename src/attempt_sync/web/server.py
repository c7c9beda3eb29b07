"""FastAPI server exposing the attempt controller."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState

from ..core.config import SyncConfig, load_profile_catalog
from ..core.controller import AttemptController, build_profile_catalog
from ..core.models import AttemptSnapshot, TaskAttempt
from ..core.profiles import ProfileCatalog
from ..errors import FollowUpValidationError, TaskServerError
from ..integrations.task_server import ProcessFetcher, TaskServerClient
from .models import (
    AttemptDataResponse,
    FollowUpResponse,
    FollowUpSubmitRequest,
    OpenEditorRequest,
    OpenEditorResponse,
    SelectAttemptRequest,
    StoppingRequest,
    SuccessResponse,
)

logger = logging.getLogger(__name__)

# How often websocket clients are checked for state changes
SNAPSHOT_PUSH_INTERVAL = 0.5


def create_app(
    config: SyncConfig,
    fetcher: Optional[ProcessFetcher] = None,
    catalog: Optional[ProfileCatalog] = None,
) -> FastAPI:
    """Create FastAPI application with all routes.

    Args:
        config: Loaded configuration
        fetcher: Task-server access; a TaskServerClient is built from
            ``config.server`` when omitted
        catalog: Profile catalog; resolved from the task server and the
            local profiles file on startup when omitted
    """
    if fetcher is None:
        fetcher = TaskServerClient(config.server)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.controller.catalog is None:
            local = load_profile_catalog(config.profiles_path)
            app.state.controller.catalog = await build_profile_catalog(fetcher, local)
        yield
        await app.state.controller.close()
        await fetcher.aclose()

    app = FastAPI(
        title="Attempt Sync",
        description="Live view of a task attempt's execution processes",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.fetcher = fetcher
    app.state.controller = AttemptController.from_config(config, fetcher, catalog)

    register_routes(app)

    return app


def register_routes(app: FastAPI):
    """Register all API routes."""

    # ============== REST API Endpoints ==============

    @app.get("/api/state", response_model=AttemptSnapshot)
    async def get_state():
        """Current snapshot of the selected attempt."""
        return app.state.controller.snapshot()

    @app.post("/api/attempt/select", response_model=AttemptSnapshot)
    async def select_attempt(request: SelectAttemptRequest):
        """Select an attempt and run its first reconciliation."""
        controller: AttemptController = app.state.controller
        if request.attempt_id is None:
            await controller.select_attempt(None)
            return controller.snapshot()

        if request.profile is not None:
            attempt = TaskAttempt(id=request.attempt_id, profile=request.profile)
        else:
            try:
                attempt = await app.state.fetcher.get_attempt(request.attempt_id)
            except TaskServerError as e:
                if e.status_code == 404:
                    raise HTTPException(status_code=404, detail=f"Attempt not found: {request.attempt_id}")
                logger.warning(f"Attempt lookup failed, selecting without metadata: {e}")
                attempt = TaskAttempt(id=request.attempt_id)

        await controller.select_attempt(attempt)
        return controller.snapshot()

    @app.post("/api/attempt/refresh", response_model=AttemptDataResponse)
    async def refresh_attempt():
        """Reconcile the selected attempt immediately."""
        controller: AttemptController = app.state.controller
        attempt = controller.selected_attempt
        if attempt is None:
            raise HTTPException(status_code=409, detail="No attempt selected")

        data = await controller.fetch_attempt_data(attempt.id)
        return AttemptDataResponse(
            attempt_id=attempt.id,
            attempt_data=data,
            is_attempt_running=controller.is_attempt_running,
        )

    @app.post("/api/attempt/stopping", response_model=SuccessResponse)
    async def set_stopping(request: StoppingRequest):
        """Flag (or clear) a pending stop of the selected attempt."""
        controller: AttemptController = app.state.controller
        if controller.selected_attempt is None:
            raise HTTPException(status_code=409, detail="No attempt selected")

        controller.set_stopping(request.stopping)
        state = "stopping" if request.stopping else "not stopping"
        return SuccessResponse(message=f"Attempt {controller.selected_attempt.id} marked {state}")

    @app.post("/api/follow-up", response_model=FollowUpResponse)
    async def submit_follow_up(request: FollowUpSubmitRequest):
        """Submit a follow-up prompt for the selected attempt."""
        controller: AttemptController = app.state.controller
        if controller.selected_attempt is None:
            raise HTTPException(status_code=409, detail="No attempt selected")

        follow_up = controller.follow_up
        if request.profile is not None:
            follow_up.select_profile(request.profile)
        if "variant" in request.model_fields_set:
            try:
                follow_up.select_variant(request.variant)
            except FollowUpValidationError as e:
                raise HTTPException(status_code=422, detail=e.message)

        sent = await follow_up.submit(request.message)
        return FollowUpResponse(success=sent, follow_up=follow_up.state())

    @app.post("/api/attempt/open-editor", response_model=OpenEditorResponse)
    async def open_editor(request: OpenEditorRequest):
        """Ask the task server to open the attempt in an editor."""
        controller: AttemptController = app.state.controller
        if controller.selected_attempt is None:
            raise HTTPException(status_code=409, detail="No attempt selected")

        opened = await controller.open_in_editor(request.editor_type)
        return OpenEditorResponse(opened=opened)

    @app.get("/api/profiles", response_model=ProfileCatalog)
    async def get_profiles():
        """Profile catalog used for default variant resolution."""
        return app.state.controller.catalog or ProfileCatalog()

    # ============== WebSocket ==============

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Push the attempt snapshot whenever it changes."""
        await websocket.accept()
        logger.info("WebSocket client connected")

        last_sent = None
        try:
            while True:
                payload = app.state.controller.snapshot().model_dump(mode="json")
                if payload != last_sent:
                    await websocket.send_json(payload)
                    last_sent = payload
                # Waiting on receive surfaces client disconnects; any client message just re-checks
                try:
                    await asyncio.wait_for(websocket.receive_text(), timeout=SNAPSHOT_PUSH_INTERVAL)
                except asyncio.TimeoutError:
                    pass

        except WebSocketDisconnect:
            logger.info("WebSocket client disconnected")
        except Exception as e:
            logger.error(f"WebSocket error: {e}")
            if (
                websocket.application_state == WebSocketState.CONNECTED
                and websocket.client_state == WebSocketState.CONNECTED
            ):
                await websocket.close(code=1011)


def run_server(
    config: SyncConfig,
    host: str = "127.0.0.1",
    port: int = 8090,
):
    """Run the HTTP server.

    Args:
        config: Loaded configuration
        host: Bind address (default: 127.0.0.1)
        port: Server port (default: 8090)
    """
    import uvicorn

    app = create_app(config)

    logger.info(f"Starting attempt-sync server at http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=config.logging.level.lower())
