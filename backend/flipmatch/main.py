"""
FlipMatch relay: HTTP health-check и WebSocket.
"""
import logging

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .config import get_config
from .relay import RelaySession
from .ws_handlers import ws_loop
from .ws_manager import WSManager

config = get_config()

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="FlipMatch Relay")
    # Одна игра на процесс, живёт до рестарта
    app.state.relay = RelaySession(time_custom=config.default_time)
    app.state.manager = WSManager()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        logger.info("WS: connection attempt from %s", ws.client)
        await ws_loop(ws)

    # Старый клиент подключается к ws://host:8080 без пути
    @app.websocket("/")
    async def websocket_root(ws: WebSocket):
        logger.info("WS: connection attempt from %s", ws.client)
        await ws_loop(ws)

    return app


app = create_app()


def run() -> None:
    import uvicorn
    logger.info("Relay listening on ws://%s:%d/ws", config.host, config.port)
    uvicorn.run(app, host=config.host, port=config.port)
