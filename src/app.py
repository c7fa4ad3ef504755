"""LiveTrack FastAPI application.

Single-domain web server: commands are processed synchronously in the
request, and committed order and location events are relayed to WebSocket
observers by the same process.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain and the distribution channel live in this process. Relayed
# updates only reach sockets connected to the same process, so the service
# runs as a single worker.
# PROTEAN_ENV selects the config overlay; event processing stays "sync" in
# every overlay because the relay handlers publish from this process.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from tracking.domain import tracking  # noqa: E402
from tracking.realtime.channel import DistributionChannel

tracking.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="LiveTrack API",
    description="Delivery order lifecycle, live location tracking and real-time updates",
)

# The process-owned distribution channel. Requests and WebSocket frames bind
# it for the duration of their work so relay handlers can publish to it.
app.state.channel = DistributionChannel()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the tracking domain context and bind the channel for each request."""
    with tracking.domain_context(), request.app.state.channel.bound():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers & error handlers
# ---------------------------------------------------------------------------
from tracking.api import location_router, order_router, participant_router, socket_router  # noqa: E402
from tracking.api.dependencies import register_error_handlers  # noqa: E402

app.include_router(participant_router)
app.include_router(order_router)
app.include_router(location_router)
app.include_router(socket_router)

register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domain": tracking.name,
        }
    )
