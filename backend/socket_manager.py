from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from contextlib import asynccontextmanager
from typing import Callable, List
import json
import logging
import time
import uuid

import config
from dispatcher import Dispatcher, rank_scores
from errors import BadRequest, InvalidState, NotFound, QuizError
from quiz_bank import QuizBank, quiz_bank
from rooms import Room, RoomRegistry
from schemas import EVENT_MODELS
import scoring

logger = logging.getLogger(__name__)


class SocketManager:
    def __init__(self, bank: QuizBank, clock: Callable[[], float] = time.time):
        self.registry = RoomRegistry(bank)
        self.dispatcher = Dispatcher()
        self.clock = clock
        self.allowed_origins: List[str] = []
        self._handlers = {
            "host-room": self.host_room,
            "join-room": self.join_room,
            "leave-room": self.leave_room,
            "get-room-role": self.get_room_role,
            "start-game": self.start_game,
            "advance-question": self.advance_question,
            "reveal-answer": self.reveal_answer,
            "submit-answer": self.submit_answer,
            "end-game": self.end_game,
        }

    @property
    def rooms(self):
        return self.registry.rooms

    async def connect(self, websocket: WebSocket):
        # Validate WebSocket origin
        origin = websocket.headers.get("origin", "")
        if self.allowed_origins and origin not in self.allowed_origins:
            logger.warning("Rejected WebSocket from unauthorized origin: %s", origin)
            await websocket.close(code=1008)
            return

        await websocket.accept()
        connection_id = uuid.uuid4().hex
        self.dispatcher.attach(connection_id, websocket)
        logger.info("Client %s connected", connection_id)
        await websocket.send_json({"type": "connected", "connectionId": connection_id})

        try:
            while True:
                data = await websocket.receive_text()

                if len(data.encode("utf-8")) > config.MAX_WS_MESSAGE_SIZE:
                    await websocket.send_json({"type": "error", "message": "Message too large"})
                    continue

                try:
                    message = json.loads(data)
                except json.JSONDecodeError:
                    logger.warning("Malformed JSON from client %s: %s", connection_id, data[:100])
                    await websocket.send_json({"type": "error", "message": "Invalid message format"})
                    continue
                if not isinstance(message, dict):
                    await websocket.send_json({"type": "error", "message": "Invalid message format"})
                    continue

                await self.handle_message(connection_id, message)
        except WebSocketDisconnect:
            logger.info("Client %s disconnected", connection_id)
        except Exception:
            logger.exception("WebSocket error for client %s", connection_id)
        finally:
            await self.disconnect(connection_id)

    async def handle_message(self, connection_id: str, message: dict):
        msg_type = message.get("type")
        request_id = message.get("requestId")
        try:
            handler = self._handlers.get(msg_type) if isinstance(msg_type, str) else None
            if handler is None:
                raise BadRequest(f"Unknown event type: {msg_type}")
            try:
                event = EVENT_MODELS[msg_type].model_validate(message)
            except ValidationError as exc:
                error = exc.errors()[0]
                detail = error.get("ctx", {}).get("error") or error["msg"]
                raise BadRequest(f"Invalid {msg_type} request: {detail}")
            await handler(connection_id, event, request_id)
        except QuizError as exc:
            logger.info("Rejected %s from %s (%s): %s", msg_type, connection_id, exc.category, exc.message)
            await self._reply(connection_id, request_id, {"type": "error", "message": exc.message})

    async def _reply(self, connection_id: str, request_id, message: dict):
        if request_id is not None:
            message["requestId"] = request_id
        await self.dispatcher.send_to(connection_id, message)

    @asynccontextmanager
    async def _locked_room(self, room_code: str):
        room = self.registry.lookup_room(room_code)
        async with room.lock:
            # The room may have been destroyed while we waited
            if self.registry.rooms.get(room_code) is not room:
                raise NotFound("Room not found")
            yield room

    # --- Room registry ---

    async def host_room(self, connection_id: str, event, request_id=None):
        room = self.registry.create_room(event.testId, connection_id)
        self.dispatcher.join(room.code, connection_id)
        await self._reply(connection_id, request_id, {"type": "room-created", "roomCode": room.code})

    # --- Connection lifecycle ---

    async def join_room(self, connection_id: str, event, request_id=None):
        async with self._locked_room(event.roomCode) as room:
            room.add_player(connection_id, event.displayName)
            self.dispatcher.join(room.code, connection_id)
            logger.info("Player '%s' (%s) joined room %s", event.displayName, connection_id, room.code)
            await self._reply(connection_id, request_id, {"type": "room-joined", "roomCode": room.code})
            await self.dispatcher.broadcast(room.code, {
                "type": "player-joined",
                "playerId": connection_id,
                "displayName": event.displayName,
                "playerCount": len(room.players),
            })

    async def leave_room(self, connection_id: str, event, request_id=None):
        room = self.registry.rooms.get(event.roomCode)
        if room is None:
            return
        async with room.lock:
            if self.registry.rooms.get(event.roomCode) is room:
                await self._depart(room, connection_id)

    async def disconnect(self, connection_id: str):
        self.dispatcher.detach(connection_id)
        for room in self.registry.rooms_for_connection(connection_id):
            async with room.lock:
                if self.registry.rooms.get(room.code) is room:
                    await self._depart(room, connection_id)

    async def _depart(self, room: Room, connection_id: str):
        if room.is_host(connection_id):
            await self.dispatcher.broadcast(room.code, {"type": "host-disconnected"})
            self.registry.destroy_room(room.code)
            self.dispatcher.discard_room(room.code)
            logger.info("Room %s disbanded (host left)", room.code)
            return

        if room.remove_player(connection_id):
            self.dispatcher.leave(room.code, connection_id)
            logger.info("Player %s left room %s", connection_id, room.code)
            await self.dispatcher.broadcast(room.code, {
                "type": "player-left",
                "playerId": connection_id,
                "playerCount": len(room.players),
            })

    async def get_room_role(self, connection_id: str, event, request_id=None):
        async with self._locked_room(event.roomCode) as room:
            role = {
                "type": "room-role",
                "isHost": room.is_host(connection_id),
                "isPlayer": room.is_player(connection_id),
                "playerCount": len(room.players),
                "gameStarted": room.game_started,
                "gameEnded": room.game_ended,
                "currentQuestionIndex": room.current_question_index,
                "maxPossiblePoints": scoring.score_cap(room.questions_shown),
            }
            if room.is_player(connection_id):
                role["currentPoints"] = room.score_of(connection_id)
            await self._reply(connection_id, request_id, role)

    # --- Game lifecycle (host only) ---

    def _question_started(self, room: Room) -> dict:
        return {
            "type": "question-started",
            "questionIndex": room.current_question_index,
            "question": room.current_question.public(),
            "totalQuestions": room.total_questions,
            "startTime": int(room.question_start_time * 1000),
        }

    async def start_game(self, connection_id: str, event, request_id=None):
        async with self._locked_room(event.roomCode) as room:
            room.require_host(connection_id)
            room.start_game(self.clock())
            logger.info("Game started in room %s (%d players)", room.code, len(room.players))
            await self.dispatcher.broadcast(room.code, self._question_started(room))

    async def advance_question(self, connection_id: str, event, request_id=None):
        async with self._locked_room(event.roomCode) as room:
            room.require_host(connection_id)
            cap = scoring.score_cap(room.questions_shown)
            if room.advance(self.clock()):
                logger.info("Game ended in room %s after last question", room.code)
                await self.dispatcher.broadcast(room.code, {
                    "type": "game-ended",
                    "finalScores": rank_scores(room),
                })
            else:
                logger.info("Question advanced in room %s to index %d", room.code, room.current_question_index)
                await self.dispatcher.broadcast(room.code, self._question_started(room))
            await self.dispatcher.send_to_host(room, {
                "type": "leaderboard-update",
                "scores": rank_scores(room),
                "maxPossiblePoints": cap,
            })

    async def end_game(self, connection_id: str, event, request_id=None):
        async with self._locked_room(event.roomCode) as room:
            room.require_host(connection_id)
            room.end_game()
            logger.info("Game ended in room %s", room.code)
            await self.dispatcher.broadcast(room.code, {
                "type": "game-ended",
                "finalScores": rank_scores(room),
            })

    async def reveal_answer(self, connection_id: str, event, request_id=None):
        async with self._locked_room(event.roomCode) as room:
            room.require_host(connection_id)
            question = room.current_question
            if question is None:
                raise InvalidState("No question to reveal")
            await self.dispatcher.broadcast(room.code, {
                "type": "answer-revealed",
                "correctAnswer": question.answer,
                "correctChoice": question.choices[question.answer],
                "explanation": question.explanation,
            })

    # --- Scoring ---

    async def submit_answer(self, connection_id: str, event, request_id=None):
        async with self._locked_room(event.roomCode) as room:
            answer = room.record_answer(connection_id, event.answer, self.clock())
            if answer is None:
                return  # only the first submission counts
            cap = scoring.score_cap(room.questions_shown)
            await self._reply(connection_id, request_id, {
                "type": "answer-received",
                "locked": True,
                "correct": answer.correct,
                "points": answer.points,
                "totalPoints": room.score_of(connection_id),
                "maxPossiblePoints": cap,
                "selectedAnswer": answer.answer,
            })
            await self.dispatcher.send_to_host(room, {
                "type": "player-answered",
                "playerId": connection_id,
                "displayName": room.players[connection_id],
                "answeredCount": len(room.player_answers),
                "totalPlayers": len(room.players),
            })
            await self.dispatcher.send_to_host(room, {
                "type": "leaderboard-update",
                "scores": rank_scores(room),
                "maxPossiblePoints": cap,
            })


socket_manager = SocketManager(quiz_bank)
