from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from fastapi.middleware.cors import CORSMiddleware
import logging
import sys
from time import perf_counter
from datetime import datetime, timezone
import uvicorn
from .config import settings
from .controller import GameController
from .errors import GameError, UpstreamError
from .models import (
	AnswerRequest,
	AnswerResponse,
	DebugPromptResponse,
	GuessInfo,
	GuessResultRequest,
	StartGameResponse,
)
from .services.enrichment import WikipediaClient
from .services.gemini_client import GeminiChatClient
from .services.learning_log import LearningLog
from .state import build_session_store

logging.basicConfig(level=getattr(logging, settings.log_level, logging.DEBUG), format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger("mindreader")

ROUTE_FAILURES = {
	"/api/game/start": "Failed to start game",
	"/api/game/answer": "Failed to process answer",
	"/api/game/guess-result": "Failed to process guess result",
}

app = FastAPI(default_response_class=ORJSONResponse)

app.add_middleware(
	CORSMiddleware,
	allow_origins=["*"],
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

_controller: GameController | None = None

def get_controller() -> GameController:
	global _controller
	if _controller is None:
		_controller = GameController(
			build_session_store(settings),
			GeminiChatClient(),
			WikipediaClient(),
			LearningLog(settings.learning_log_path),
		)
	return _controller

@app.on_event("startup")
def on_startup() -> None:
	if not settings.gemini_api_key:
		logger.error({"event": "api_startup_failed", "reason": "GEMINI_API_KEY is not set"})
		raise RuntimeError("GEMINI_API_KEY is not set")
	logger.info({
		"event": "api_startup",
		"utc_time": datetime.now(timezone.utc).isoformat(),
		"model": settings.gemini_model,
		"session_backend": settings.session_backend,
		"history_window": settings.history_window,
		"guess_window": [settings.guess_min_questions, settings.guess_max_questions],
		"llm_timeout_s": settings.llm_timeout_seconds,
	})

@app.on_event("shutdown")
async def on_shutdown() -> None:
	global _controller
	if _controller is None:
		return
	await _controller.enrichment.aclose()
	await _controller.store.close()
	_controller = None

@app.middleware("http")
async def timing_middleware(request: Request, call_next):
	start = perf_counter()
	response = await call_next(request)
	duration_ms = int((perf_counter() - start) * 1000)
	logger.debug({
		"event": "request_timing",
		"method": request.method,
		"path": request.url.path,
		"status_code": response.status_code,
		"duration_ms": duration_ms,
	})
	return response

@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError):
	payload = exc.to_payload()
	if isinstance(exc, UpstreamError):
		payload["error"] = ROUTE_FAILURES.get(request.url.path, exc.message)
		payload["details"] = exc.message if exc.details is None else f"{exc.message}: {exc.details}"
	logger.debug({"event": "request_failed", "path": request.url.path, "status_code": exc.status_code, "error": exc.message})
	return ORJSONResponse(status_code=exc.status_code, content=payload)

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
	return ORJSONResponse(status_code=400, content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())})

@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
	logger.exception("unhandled_error")
	failure = ROUTE_FAILURES.get(request.url.path, "Internal server error")
	return ORJSONResponse(status_code=500, content={"error": failure, "details": str(exc)})

@app.post("/api/game/start", response_model=StartGameResponse)
async def start_game(controller: GameController = Depends(get_controller)):
	return await controller.start()

@app.post("/api/game/answer", response_model=AnswerResponse, response_model_exclude_none=True)
async def submit_answer(payload: AnswerRequest, controller: GameController = Depends(get_controller)):
	return await controller.answer(
		payload.session_id,
		payload.answer,
		client_history=payload.conversation_history,
		go_back=payload.go_back,
	)

@app.post("/api/game/guess-result", response_model=None)
async def guess_result(payload: GuessResultRequest, controller: GameController = Depends(get_controller)):
	return await controller.guess_result(payload.session_id, payload.correct, payload.actual_answer)

@app.get("/api/game/info/{name:path}", response_model=GuessInfo)
async def guess_info(name: str, controller: GameController = Depends(get_controller)):
	return await controller.info(name)

@app.get("/api/debug/prompt", response_model=DebugPromptResponse)
async def get_debug_prompt(session_id: str = Query(..., alias="sessionId"), controller: GameController = Depends(get_controller)):
	return await controller.debug_prompt(session_id)

def run() -> None:
	if not settings.gemini_api_key:
		logger.error({"event": "api_startup_failed", "reason": "GEMINI_API_KEY is not set"})
		sys.exit(1)
	uvicorn.run("mindreader.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())

if __name__ == "__main__":
	run()
