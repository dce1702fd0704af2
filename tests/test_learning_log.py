import asyncio

import pytest

from mindreader.services.learning_log import LearningLog


@pytest.mark.asyncio
async def test_records_are_appended_as_json_lines(learning_log):
    assert await learning_log.record_wrong_guess("Adele", "Taylor Swift", 12)
    assert await learning_log.record_correct_guess("Adele")
    records = learning_log.read_records()
    assert [r["event"] for r in records] == ["wrong_guess", "correct_guess"]
    assert records[0]["correctAnswer"] == "Adele"
    assert records[0]["wrongGuess"] == "Taylor Swift"
    assert records[0]["conversationLength"] == 12
    assert "timestamp" in records[1]


@pytest.mark.asyncio
async def test_incomplete_records_are_skipped(learning_log):
    assert not await learning_log.record_wrong_guess(None, "Taylor Swift", 3)
    assert not await learning_log.record_correct_guess(None)
    assert learning_log.read_records() == []


@pytest.mark.asyncio
async def test_concurrent_appends_keep_lines_whole(learning_log):
    await asyncio.gather(*(learning_log.record_correct_guess(f"Name {i}") for i in range(20)))
    answers = sorted(r["answer"] for r in learning_log.read_records())
    assert answers == sorted(f"Name {i}" for i in range(20))


@pytest.mark.asyncio
async def test_write_failure_is_swallowed(tmp_path):
    log = LearningLog(str(tmp_path))
    assert await log.record_correct_guess("Adele") is False
