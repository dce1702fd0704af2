import time
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class Message(BaseModel):
    role: Literal["user", "assistant"]
    content: str

class GameState(str, Enum):
    AWAITING_FIRST_QUESTION = "awaiting_first_question"
    QUESTIONING = "questioning"
    GUESS_PENDING = "guess_pending"
    GAME_OVER = "game_over"

class GuessInfo(CamelModel):
    image_url: Optional[str] = None
    description: Optional[str] = None

class LastGuess(BaseModel):
    name: Optional[str] = None
    image_url: Optional[str] = None
    description: Optional[str] = None

class GameSession(BaseModel):
    session_id: str
    conversation_history: List[Message] = Field(default_factory=list)
    guess_count: int = 0
    last_guess: Optional[LastGuess] = None
    state: GameState = GameState.AWAITING_FIRST_QUESTION
    created_at: float = Field(default_factory=time.time)
    last_accessed: float = Field(default_factory=time.time)

    @property
    def question_count(self) -> int:
        return sum(1 for m in self.conversation_history if m.role == "assistant")

    def add_message(self, role: str, content: str) -> None:
        self.conversation_history.append(Message(role=role, content=content))

class StartGameResponse(CamelModel):
    session_id: str
    question: str

class AnswerRequest(CamelModel):
    session_id: str
    answer: str = ""
    conversation_history: Optional[List[Message]] = None
    go_back: bool = False

class AnswerResponse(CamelModel):
    question: str
    is_guess: bool
    question_count: int
    progress: int
    guess_name: Optional[str] = None
    guess_image: Optional[str] = None
    guess_description: Optional[str] = None

class GuessResultRequest(CamelModel):
    session_id: str
    correct: bool
    actual_answer: Optional[str] = None

class GuessConfirmedResponse(BaseModel):
    success: bool = True
    message: str

class FollowUpQuestionResponse(CamelModel):
    question: str
    continue_: bool = Field(default=True, alias="continue")
    is_guess: bool = False

class DebugPromptResponse(BaseModel):
    prompt: str
