from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import uvicorn
import logging

import config
config.setup_logging()

from quiz_bank import quiz_bank
from socket_manager import socket_manager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting quiz room server")
    quiz_bank.load_directory(config.QUIZ_DIR)
    yield
    logger.info("Shutting down quiz room server (%d active rooms)", len(socket_manager.rooms))


app = FastAPI(title="Live Quiz Room Server", lifespan=lifespan)


@app.get("/tests")
async def list_tests():
    """Available tests grouped by category."""
    return {"categories": quiz_bank.list_by_category()}


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await socket_manager.connect(websocket)


# Configure CORS
if config.ALLOWED_ORIGINS.strip():
    origins = [o.strip() for o in config.ALLOWED_ORIGINS.split(",")]
    socket_manager.allowed_origins = origins
else:
    origins = [
        f"http://localhost:{config.PORT}",
        f"http://127.0.0.1:{config.PORT}",
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["Content-Type"],
)


@app.get("/")
async def root():
    return {"message": "Quiz room server is running"}


@app.get("/health")
async def health():
    return {"status": "healthy", "rooms": len(socket_manager.rooms)}


if __name__ == "__main__":
    uvicorn.run("main:app", host=config.HOST, port=config.PORT, reload=True)
