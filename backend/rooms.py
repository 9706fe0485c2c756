from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import asyncio
import logging
import random

import config
from errors import Conflict, InvalidState, NotFound, Unauthorized
from quiz_bank import QuizBank
from schemas import Question, QuizTest
import scoring

logger = logging.getLogger(__name__)


@dataclass
class Answer:
    answer: str
    time: float  # seconds since the question was shown
    correct: bool
    points: float


class Room:
    def __init__(self, code: str, host_id: str, test_id: str, test: QuizTest):
        self.code = code
        self.host_id = host_id
        self.test_id = test_id
        self.questions: Tuple[Question, ...] = tuple(test.questions)
        self.current_question_index = -1
        self.game_started = False
        self.game_ended = False
        self.players: Dict[str, str] = {}  # connection_id -> display name, join order
        self.player_answers: Dict[str, Answer] = {}  # current question only
        self.player_scores: Dict[str, float] = {}
        self.question_start_time: Optional[float] = None
        self.max_possible_points = 0
        self.lock = asyncio.Lock()

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def state(self) -> str:
        if self.game_ended:
            return "ENDED"
        if self.game_started:
            return "IN_PROGRESS"
        return "LOBBY"

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_question_index < self.total_questions:
            return self.questions[self.current_question_index]
        return None

    @property
    def questions_shown(self) -> int:
        return self.current_question_index + 1 if self.current_question_index >= 0 else 0

    def is_host(self, connection_id: str) -> bool:
        return self.host_id == connection_id

    def is_player(self, connection_id: str) -> bool:
        return connection_id in self.players

    def require_host(self, connection_id: str):
        if not self.is_host(connection_id):
            raise Unauthorized("Unauthorized")

    def score_of(self, connection_id: str) -> float:
        return self.player_scores.get(connection_id, 0.0)

    # --- Membership ---

    def add_player(self, connection_id: str, display_name: str):
        if self.game_ended:
            raise Conflict("Game has ended")
        if display_name in self.players.values():
            raise Conflict("Display name already taken")
        self.players[connection_id] = display_name

    def remove_player(self, connection_id: str) -> bool:
        if connection_id not in self.players:
            return False
        del self.players[connection_id]
        self.player_answers.pop(connection_id, None)
        self.player_scores.pop(connection_id, None)
        return True

    # --- Lifecycle ---

    def start_game(self, now: float):
        if self.game_ended:
            raise InvalidState("Game has ended")
        if self.game_started:
            raise InvalidState("Game already started")
        self.game_started = True
        self.current_question_index = 0
        self.player_answers = {}
        self.player_scores = {player_id: 0.0 for player_id in self.players}
        self.max_possible_points = scoring.score_cap(self.total_questions)
        self.question_start_time = now

    def advance(self, now: float) -> bool:
        """Move to the next question. Returns True when this ended the game."""
        if self.game_ended:
            raise InvalidState("Game has ended")
        if not self.game_started:
            raise InvalidState("Game has not started")
        if self.current_question_index >= self.total_questions - 1:
            self.game_ended = True
            return True
        self.current_question_index += 1
        self.player_answers = {}
        self.question_start_time = now
        return False

    def end_game(self):
        if self.game_ended:
            raise InvalidState("Game has already ended")
        self.game_ended = True

    # --- Answers ---

    def record_answer(self, connection_id: str, answer: str, now: float) -> Optional[Answer]:
        """Score a submission. Returns None when the player already answered this question."""
        if not self.is_player(connection_id):
            raise Unauthorized("Unauthorized")
        if not self.game_started or self.game_ended or self.current_question is None:
            raise InvalidState("Game not in progress")
        if connection_id in self.player_answers:
            return None

        elapsed = now - self.question_start_time
        correct = answer == self.current_question.answer
        points = scoring.calculate_points(correct, elapsed)
        self.player_scores[connection_id] = scoring.accumulate_score(self.score_of(connection_id), points)
        recorded = Answer(answer=answer, time=elapsed, correct=correct, points=points)
        self.player_answers[connection_id] = recorded
        return recorded


class RoomRegistry:
    def __init__(self, bank: QuizBank):
        self.bank = bank
        self.rooms: Dict[str, Room] = {}

    def __len__(self) -> int:
        return len(self.rooms)

    def __contains__(self, code: str) -> bool:
        return code in self.rooms

    def generate_room_code(self) -> str:
        """Pick an unused 4-digit code by rejection sampling."""
        capacity = config.ROOM_CODE_MAX - config.ROOM_CODE_MIN + 1
        if len(self.rooms) >= capacity:
            raise Conflict("No room codes available")
        while True:
            code = str(random.randint(config.ROOM_CODE_MIN, config.ROOM_CODE_MAX))
            if code not in self.rooms:
                return code

    def create_room(self, test_id: str, host_id: str) -> Room:
        test = self.bank.get_test_by_id(test_id)
        if test is None:
            raise NotFound("Invalid test selected")
        code = self.generate_room_code()
        room = Room(code, host_id, test_id, test)
        self.rooms[code] = room
        logger.info("Room %s created by host %s (test %s)", code, host_id, test_id)
        return room

    def lookup_room(self, code: str) -> Room:
        room = self.rooms.get(code)
        if room is None:
            raise NotFound("Room not found")
        return room

    def destroy_room(self, code: str) -> Optional[Room]:
        room = self.rooms.pop(code, None)
        if room:
            logger.info("Room %s destroyed", code)
        return room

    def rooms_for_connection(self, connection_id: str) -> List[Room]:
        """Rooms the connection hosts or plays in. Scans every active room."""
        return [
            room for room in self.rooms.values()
            if room.is_host(connection_id) or room.is_player(connection_id)
        ]
