from fastapi import WebSocket
from typing import Dict, List
import logging

logger = logging.getLogger(__name__)


def rank_scores(room) -> Dict[str, dict]:
    """Players by cumulative score, highest first. Ties keep join order."""
    ranked = sorted(
        room.players.items(),
        key=lambda item: room.score_of(item[0]),
        reverse=True,
    )
    return {
        player_id: {"displayName": display_name, "score": room.score_of(player_id)}
        for player_id, display_name in ranked
    }


class Dispatcher:
    """Routes outgoing messages to a whole room, the host, or a single connection.

    Messages for a connection that is gone are dropped; nothing is queued.
    """

    def __init__(self):
        self.connections: Dict[str, WebSocket] = {}
        self.members: Dict[str, Dict[str, None]] = {}  # room code -> joined connection ids

    def attach(self, connection_id: str, websocket: WebSocket):
        self.connections[connection_id] = websocket

    def detach(self, connection_id: str):
        self.connections.pop(connection_id, None)
        for joined in self.members.values():
            joined.pop(connection_id, None)

    def join(self, room_code: str, connection_id: str):
        self.members.setdefault(room_code, {})[connection_id] = None

    def leave(self, room_code: str, connection_id: str):
        joined = self.members.get(room_code)
        if joined is not None:
            joined.pop(connection_id, None)

    def discard_room(self, room_code: str):
        self.members.pop(room_code, None)

    def members_of(self, room_code: str) -> List[str]:
        return list(self.members.get(room_code, {}))

    async def send_to(self, connection_id: str, message: dict):
        ws = self.connections.get(connection_id)
        if ws is None:
            return
        try:
            await ws.send_json(message)
        except Exception:
            logger.debug("Dropping connection %s after failed send", connection_id)
            self.detach(connection_id)

    async def send_to_host(self, room, message: dict):
        await self.send_to(room.host_id, message)

    async def broadcast(self, room_code: str, message: dict):
        for connection_id in self.members_of(room_code):
            await self.send_to(connection_id, message)
