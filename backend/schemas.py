from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Dict, List, Optional, Type

import config


# --- Quiz files ---

class Question(BaseModel):
    question: str
    choices: Dict[str, str]
    answer: str
    explanation: Optional[str] = None

    @model_validator(mode="after")
    def check_answer_is_a_choice(self):
        if not self.choices:
            raise ValueError("Question must have at least one choice")
        if self.answer not in self.choices:
            raise ValueError(f"Answer '{self.answer}' is not one of the choices")
        return self

    def public(self) -> dict:
        """Question as shown to the room, without the answer or explanation."""
        return {"question": self.question, "choices": dict(self.choices)}


class QuizMetadata(BaseModel):
    id: str
    name: str
    category: Optional[str] = None
    description: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class QuizTest(BaseModel):
    metadata: QuizMetadata
    questions: List[Question] = Field(min_length=1)


# --- Inbound WebSocket events ---

class RoomEvent(BaseModel):
    roomCode: str

    @field_validator("roomCode", mode="before")
    @classmethod
    def coerce_room_code(cls, v):
        # Clients sometimes send the code as a number
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class HostRoomEvent(BaseModel):
    testId: str

    @field_validator("testId", mode="before")
    @classmethod
    def coerce_test_id(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class JoinRoomEvent(RoomEvent):
    displayName: str

    @field_validator("displayName")
    @classmethod
    def validate_display_name(cls, v: str) -> str:
        if not v.strip() or len(v) > config.MAX_DISPLAY_NAME_LENGTH:
            raise ValueError(f"Display name must be 1-{config.MAX_DISPLAY_NAME_LENGTH} characters")
        return v


class SubmitAnswerEvent(RoomEvent):
    answer: str


EVENT_MODELS: Dict[str, Type[BaseModel]] = {
    "host-room": HostRoomEvent,
    "join-room": JoinRoomEvent,
    "leave-room": RoomEvent,
    "get-room-role": RoomEvent,
    "start-game": RoomEvent,
    "advance-question": RoomEvent,
    "reveal-answer": RoomEvent,
    "submit-answer": SubmitAnswerEvent,
    "end-game": RoomEvent,
}
