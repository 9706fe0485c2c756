"""Async client for the quiz room WebSocket.

Replies to a request are matched by ``requestId`` and resolve the future
returned for that request; every other message lands in an event queue.
"""
from typing import Dict, Optional
import asyncio
import itertools
import json
import logging

import websockets

logger = logging.getLogger(__name__)


class QuizClientError(Exception):
    """The server answered a request with an error message."""


class QuizClient:
    def __init__(self, url: str):
        self.url = url
        self.connection_id: Optional[str] = None
        self._ws = None
        self._reader: Optional[asyncio.Task] = None
        self._pending: Dict[str, asyncio.Future] = {}
        self._events: asyncio.Queue = asyncio.Queue()
        self._ids = itertools.count(1)

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def connect(self):
        self._ws = await websockets.connect(self.url)
        hello = json.loads(await self._ws.recv())
        self.connection_id = hello.get("connectionId")
        self._reader = asyncio.create_task(self._read_loop())

    async def close(self):
        if self._ws is not None:
            await self._ws.close()
        if self._reader is not None:
            await self._reader

    async def emit(self, msg_type: str, **payload):
        await self._ws.send(json.dumps({"type": msg_type, **payload}))

    async def request(self, msg_type: str, timeout: float = 10.0, **payload) -> dict:
        """Send an event and wait for its correlated reply.

        Only events that answer the requester can be awaited this way; a
        repeated submit-answer gets no reply and times out.
        """
        request_id = f"{self.connection_id}-{next(self._ids)}"
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            await self.emit(msg_type, requestId=request_id, **payload)
            reply = await asyncio.wait_for(future, timeout=timeout)
        finally:
            self._pending.pop(request_id, None)
        if reply.get("type") == "error":
            raise QuizClientError(reply.get("message", "Unknown error"))
        return reply

    async def next_event(self, msg_type: Optional[str] = None, timeout: float = 10.0) -> dict:
        """Next uncorrelated message, skipping any whose type doesn't match."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise TimeoutError(f"Never received {msg_type} within {timeout}s")
            message = await asyncio.wait_for(self._events.get(), timeout=remaining)
            if msg_type is None or message.get("type") == msg_type:
                return message

    async def host_room(self, test_id: str) -> str:
        reply = await self.request("host-room", testId=test_id)
        return reply["roomCode"]

    async def join_room(self, room_code: str, display_name: str) -> str:
        reply = await self.request("join-room", roomCode=room_code, displayName=display_name)
        return reply["roomCode"]

    async def get_room_role(self, room_code: str) -> dict:
        return await self.request("get-room-role", roomCode=room_code)

    async def _read_loop(self):
        try:
            async for raw in self._ws:
                message = json.loads(raw)
                future = self._pending.pop(message.get("requestId"), None)
                if future is not None and not future.done():
                    future.set_result(message)
                else:
                    await self._events.put(message)
        except websockets.ConnectionClosed:
            logger.debug("Connection %s closed", self.connection_id)
        finally:
            for future in self._pending.values():
                if not future.done():
                    future.set_exception(ConnectionError("Connection closed"))
            self._pending.clear()
