"""
FastAPI server for the Live Captions relay.

Capture clients connect over a WebSocket, send one config message followed
by audio frames, and receive transcripts, errors and link status updates.
Each connection gets its own relay session; sessions share nothing.
"""

import asyncio
import uuid

import websockets
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from livecaptions import __version__
from livecaptions.bridges.client_bridge import ClientBridge
from livecaptions.config import get_config
from livecaptions.config.env_loader import load_env_file
from livecaptions.config.logging_config import configure_logging
from livecaptions.handlers.error_handler import get_error_handler
from livecaptions.models.session_state import SessionStatus
from livecaptions.services.session_registry import SessionRegistry

# Load environment variables before accessing configuration
load_env_file()

config = get_config()

logger = configure_logging("main")

logger.info("Server configuration:")
logger.info(f"  - Environment: {config.server.environment.value}")
logger.info(f"  - Realtime URL: {config.openai.realtime_url}")
logger.info(f"  - Batch flush: {config.batch.flush_interval_ms}ms / {config.batch.min_bytes} bytes")

app = FastAPI(
    title="Live Captions Relay",
    description="Relays live audio to OpenAI transcription and streams captions back",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.security.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "WEBSOCKET"],
    allow_headers=["*"],
)

registry = SessionRegistry()
app.state.registry = registry


@app.on_event("shutdown")
async def shutdown_event():
    await registry.close_all()


async def _serve_client(websocket: WebSocket) -> None:
    connection_id = uuid.uuid4().hex
    bridge = None
    await websocket.accept()
    logger.info(f"Client connected: {connection_id}")

    try:
        bridge = ClientBridge(websocket, config=config)
        registry.add(connection_id, bridge.session)
        await bridge.receive_from_client()

    except WebSocketDisconnect:
        logger.info(f"Client disconnected: {connection_id}")
    except websockets.exceptions.ConnectionClosed as e:
        logger.error(f"WebSocket connection closed: {e}")
    except asyncio.TimeoutError:
        logger.error("WebSocket operation timed out")
    except asyncio.CancelledError:
        logger.info("WebSocket operation was cancelled")
    except Exception as e:
        if bridge is not None and bridge.session.status == SessionStatus.CLOSED:
            logger.info(f"Client link closed after session ended: {e}")
        else:
            logger.error(f"Unexpected error in websocket endpoint: {e}")
            logger.exception("Full traceback:")
    finally:
        registry.remove(connection_id)
        if bridge is not None:
            try:
                await bridge.close()
            except Exception as e:
                logger.error(f"Error closing bridge: {e}")


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for capture clients."""
    await _serve_client(websocket)


@app.websocket("/")
async def root_websocket_endpoint(websocket: WebSocket):
    """Alias of /ws for clients configured with a bare server URL."""
    await _serve_client(websocket)


@app.get("/")
async def root():
    """Basic information about the relay."""
    return {
        "name": "Live Captions Relay",
        "version": __version__,
        "configuration": {
            "environment": config.server.environment.value,
            "transcription_model": config.openai.transcription_model,
            "translation_model": config.openai.translation_model,
            "audio_format": config.audio.format,
            "sample_rate": config.audio.sample_rate,
        },
        "endpoints": {
            "/ws": "WebSocket endpoint for capture clients",
            "/health": "Health check endpoint for service monitoring",
            "/stats": "Session statistics",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring service health."""
    return {"status": "ok", "active_sessions": len(registry)}


@app.get("/stats")
async def get_stats():
    """Session and error statistics."""
    return {
        "sessions": registry.get_stats(),
        "errors": get_error_handler().get_error_stats(),
    }
