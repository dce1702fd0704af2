import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger("mindreader")


class LearningLog:
    """Append-only JSONL record of how guesses turned out.

    Writes are best effort: a failing disk is logged and never reaches the caller.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = asyncio.Lock()

    def _write_line(self, line: str) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    async def _append(self, record: Dict[str, Any]) -> bool:
        enriched = dict(record)
        enriched.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        line = json.dumps(enriched, ensure_ascii=False)
        try:
            async with self._lock:
                await asyncio.to_thread(self._write_line, line)
        except OSError:
            logger.exception("learning_log_write_failed")
            return False
        return True

    async def record_wrong_guess(self, correct_answer: Optional[str], wrong_guess: Optional[str], conversation_length: int) -> bool:
        if not correct_answer or not wrong_guess:
            return False
        return await self._append({
            "event": "wrong_guess",
            "correctAnswer": correct_answer,
            "wrongGuess": wrong_guess,
            "conversationLength": conversation_length,
        })

    async def record_correct_guess(self, answer: Optional[str]) -> bool:
        if not answer:
            return False
        return await self._append({"event": "correct_guess", "answer": answer})

    def read_records(self) -> List[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return []
        records: List[Dict[str, Any]] = []
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError:
                    logger.warning({"event": "learning_log_bad_line", "preview": line[:80]})
        return records
