import asyncio
import logging

from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect

from tokenwatch import __version__
from tokenwatch.scanner import TokenScanner

logger = logging.getLogger(__name__)

CLIENT_IDLE_TIMEOUT = 300
INIT_RECENT = 30


def create_app(scanner: TokenScanner) -> FastAPI:
    app = FastAPI(
        title="tokenwatch",
        version=__version__,
        description="Watches new contract deployments and reports ERC-20 tokens with their websites.",
    )
    app.state.scanner = scanner

    @app.on_event("startup")
    async def startup():
        await scanner.start()

    @app.on_event("shutdown")
    async def shutdown():
        await scanner.stop()

    @app.get("/api/health")
    async def health():
        return {"status": "online", "connection": scanner.supervisor.state.value}

    @app.get("/api/stats")
    async def get_stats():
        return scanner.stats()

    @app.get("/api/recent")
    async def get_recent(limit: int = Query(50, ge=1, le=500)):
        return {"tokens": scanner.sink.snapshot(limit), "total": len(scanner.sink.recent)}

    @app.websocket("/ws")
    async def live_feed(ws: WebSocket):
        sink = scanner.sink
        await ws.accept()
        try:
            await sink.attach(ws, {"type": "init", "stats": scanner.stats(), "recent": sink.snapshot(INIT_RECENT)})
            while True:
                msg = await asyncio.wait_for(ws.receive_json(), timeout=CLIENT_IDLE_TIMEOUT)
                if isinstance(msg, dict) and msg.get("type") == "ping":
                    await ws.send_json({"type": "pong"})
        except asyncio.TimeoutError:
            logger.info("Closing client, silent for %ss", CLIENT_IDLE_TIMEOUT)
            await ws.close()
        except ValueError:
            logger.info("Closing client after a malformed message")
            await ws.close(code=1003)
        except WebSocketDisconnect:
            pass
        finally:
            sink.detach(ws)

    return app
