import logging
import random
import uuid
from typing import List, Optional, Sequence

from .config import Settings, settings as default_settings
from .errors import BadRequestError, InvalidHistoryError, SessionNotFoundError, UpstreamError
from .models import (
	AnswerResponse,
	DebugPromptResponse,
	FollowUpQuestionResponse,
	GameSession,
	GameState,
	GuessConfirmedResponse,
	GuessInfo,
	LastGuess,
	Message,
	StartGameResponse,
)
from .services.adaptive_engine import compute_confidence, compute_progress, is_guess_ready
from .services.dedup import is_duplicate_question
from .services.enrichment import WikipediaClient
from .services.gemini_client import ChatModel
from .services.guess_extractor import extract_name
from .services.history import (
	CORRECT_GUESS_REPLY,
	asked_questions,
	last_assistant_message,
	user_answers,
	wrong_guess_reply,
)
from .services.learning_log import LearningLog
from .services.prompt_builder import Phase, PromptBuilder, escalate
from .services.sanitizer import is_guess, sanitize
from .state import SessionStore

logger = logging.getLogger("mindreader")


def window(history: Sequence[Message], size: int) -> List[Message]:
	"""Tail of the history sent to the model; it always opens on a user turn."""
	recent = list(history[-size:]) if size > 0 else list(history)
	while recent and recent[0].role == "assistant":
		recent = recent[1:]
	return recent


class GameController:
	def __init__(
		self,
		store: SessionStore,
		model: ChatModel,
		enrichment: WikipediaClient,
		learning_log: LearningLog,
		*,
		builder: Optional[PromptBuilder] = None,
		config: Settings = default_settings,
		rng: Optional[random.Random] = None,
	) -> None:
		self.store = store
		self.model = model
		self.enrichment = enrichment
		self.learning_log = learning_log
		self.builder = builder or PromptBuilder()
		self.config = config
		self.rng = rng

	async def _load(self, session_id: str) -> GameSession:
		session = await self.store.get(session_id)
		if session is None:
			logger.debug({"event": "session_not_found", "session_id": session_id})
			raise SessionNotFoundError(session_id)
		return session

	def _guess_ready(self, session: GameSession) -> tuple[float, bool]:
		confidence = compute_confidence(user_answers(session.conversation_history))
		ready = is_guess_ready(
			session.question_count,
			confidence,
			low=self.config.guess_min_questions,
			high=self.config.guess_max_questions,
			threshold=self.config.guess_confidence_threshold,
		)
		return confidence, ready

	async def start(self) -> StartGameResponse:
		session = GameSession(session_id=str(uuid.uuid4()))
		session.add_message("user", self.builder.opening_message(self.rng))
		instruction = self.builder.build(session.conversation_history, Phase.START)
		raw = await self.model.generate(instruction, session.conversation_history, temperature=self.config.llm_temperature)
		question = sanitize(raw)
		if not question:
			raise UpstreamError("The model returned an empty question")
		session.add_message("assistant", question)
		session.state = GameState.GUESS_PENDING if is_guess(question) else GameState.QUESTIONING
		await self.store.put(session)
		logger.debug({"event": "session_started", "session_id": session.session_id, "question": question})
		return StartGameResponse(session_id=session.session_id, question=question)

	async def _generate_with_dedup_retry(self, history: Sequence[Message], phase: Phase, guess_ready: bool) -> str:
		instruction = self.builder.build(history, phase, guess_ready=guess_ready)
		previous = asked_questions(history)
		recent = window(history, self.config.history_window)
		reply = sanitize(await self.model.generate(instruction, recent, temperature=self.config.llm_temperature))
		retries = 0
		duplicate = not is_guess(reply) and is_duplicate_question(reply, previous, self.config.duplicate_similarity)
		while duplicate and retries < self.config.duplicate_retries:
			retries += 1
			logger.debug({"event": "duplicate_question", "attempt": retries, "question": reply})
			retry_instruction = escalate(instruction, previous)
			reply = sanitize(await self.model.generate(retry_instruction, recent, temperature=self.config.llm_retry_temperature))
			duplicate = not is_guess(reply) and is_duplicate_question(reply, previous, self.config.duplicate_similarity)
		if duplicate:
			logger.warning({"event": "duplicate_question_accepted", "retries": retries, "question": reply})
		if not reply:
			raise UpstreamError("The model returned an empty reply")
		return reply

	async def _attach_guess(self, session: GameSession, question: str) -> LastGuess:
		name = extract_name(question)
		info = await self.enrichment.lookup(name) if name else GuessInfo()
		guess = LastGuess(name=name, image_url=info.image_url, description=info.description)
		session.guess_count += 1
		session.last_guess = guess
		session.state = GameState.GUESS_PENDING
		logger.info({"event": "guess_made", "session_id": session.session_id, "name": name, "guess_count": session.guess_count})
		return guess

	async def _go_back(self, session: GameSession, client_history: Optional[Sequence[Message]]) -> AnswerResponse:
		if client_history is None:
			raise InvalidHistoryError("Invalid conversation history")
		history = list(client_history)
		if not history:
			raise InvalidHistoryError("Empty conversation history")
		last = last_assistant_message(history)
		if last is None:
			raise InvalidHistoryError("Conversation history has no question to return to")
		session.conversation_history = history
		question_count = session.question_count
		confidence = compute_confidence(user_answers(history))
		guess = is_guess(last.content)
		response = AnswerResponse(
			question=last.content,
			is_guess=guess,
			question_count=question_count,
			progress=compute_progress(question_count - 1, confidence, guess),
		)
		if guess:
			response.guess_name = extract_name(last.content)
			cached = session.last_guess
			if cached is not None and cached.name == response.guess_name:
				response.guess_image = cached.image_url
				response.guess_description = cached.description
		session.state = GameState.GUESS_PENDING if guess else GameState.QUESTIONING
		await self.store.put(session)
		logger.debug({"event": "went_back", "session_id": session.session_id, "question_count": question_count})
		return response

	async def answer(
		self,
		session_id: str,
		answer: Optional[str],
		client_history: Optional[Sequence[Message]] = None,
		go_back: bool = False,
	) -> AnswerResponse:
		async with self.store.lock(session_id):
			session = await self._load(session_id)
			if go_back:
				return await self._go_back(session, client_history)
			if client_history:
				session.conversation_history = list(client_history)
			text = (answer or "").strip()
			if not text:
				raise BadRequestError("Answer is required")
			session.add_message("user", text)
			question_count = session.question_count
			confidence, ready = self._guess_ready(session)
			logger.debug({
				"event": "answer_received",
				"session_id": session_id,
				"answer": text,
				"question_count": question_count,
				"confidence": round(confidence, 2),
				"guess_ready": ready,
			})
			question = await self._generate_with_dedup_retry(session.conversation_history, Phase.ASK_NEXT, ready)
			session.add_message("assistant", question)
			guess = is_guess(question)
			response = AnswerResponse(
				question=question,
				is_guess=guess,
				question_count=question_count + 1,
				progress=compute_progress(question_count, confidence, guess),
			)
			if guess:
				cached = await self._attach_guess(session, question)
				response.guess_name = cached.name
				response.guess_image = cached.image_url
				response.guess_description = cached.description
			else:
				session.state = GameState.QUESTIONING
			await self.store.put(session)
			return response

	def _guessed_name(self, session: GameSession) -> Optional[str]:
		last = last_assistant_message(session.conversation_history)
		if last is None or not is_guess(last.content):
			return None
		name = extract_name(last.content)
		cached = session.last_guess
		if cached is not None and cached.name and (not name or cached.name == name):
			return cached.name
		return name

	async def guess_result(self, session_id: str, correct: bool, actual_answer: Optional[str] = None):
		async with self.store.lock(session_id):
			session = await self._load(session_id)
			guessed = self._guessed_name(session)
			if correct:
				await self.learning_log.record_correct_guess(guessed)
				session.add_message("user", CORRECT_GUESS_REPLY)
				session.state = GameState.GAME_OVER
				await self.store.delete(session_id)
				logger.info({"event": "guess_correct", "session_id": session_id, "name": guessed, "guess_count": session.guess_count})
				message = f"Great! I guessed {guessed}!" if guessed else "Great! I guessed it!"
				return GuessConfirmedResponse(success=True, message=message)

			await self.learning_log.record_wrong_guess(actual_answer, guessed, len(session.conversation_history))
			session.add_message("user", wrong_guess_reply(actual_answer))
			logger.info({"event": "guess_wrong", "session_id": session_id, "name": guessed, "actual_answer": actual_answer})
			question = await self._generate_with_dedup_retry(session.conversation_history, Phase.POST_WRONG_GUESS, guess_ready=False)
			session.add_message("assistant", question)
			guess = is_guess(question)
			if guess:
				await self._attach_guess(session, question)
			else:
				session.state = GameState.QUESTIONING
			await self.store.put(session)
			return FollowUpQuestionResponse(question=question, continue_=True, is_guess=guess)

	async def info(self, name: str) -> GuessInfo:
		return await self.enrichment.lookup(name)

	async def debug_prompt(self, session_id: str) -> DebugPromptResponse:
		session = await self._load(session_id)
		_, ready = self._guess_ready(session)
		return DebugPromptResponse(prompt=self.builder.build(session.conversation_history, Phase.ASK_NEXT, guess_ready=ready))
