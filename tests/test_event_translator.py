"""Tests for the upstream event -> OpenAI SSE chunk translator."""

import orjson
import pytest

from cohere_openai.services.chunk_builder import COMPLETION_ID, ChunkBuilder
from cohere_openai.services.event_translator import EventTranslator
from cohere_openai.services.events import parse_event

CREATED = 1_700_000_000


@pytest.fixture
def translator():
    return EventTranslator(ChunkBuilder("command-r", CREATED))


def _decode(frames):
    payloads = []
    for frame in frames:
        assert frame.startswith("data: ") and frame.endswith("\n\n")
        payloads.append(orjson.loads(frame[len("data: "):-2]))
    return payloads


def _search_event(descriptor, **extra):
    event = {
        "event_type": "search-results",
        "search_results": [{"search_query": {"text": orjson.dumps(descriptor).decode()}}],
    }
    event.update(extra)
    return parse_event(event)


def test_text_event_emits_one_content_chunk(translator):
    chunks = _decode(translator.translate(parse_event({"event_type": "text-generation", "text": "Hel"})))

    assert chunks == [{
        "id": COMPLETION_ID,
        "object": "chat.completion.chunk",
        "created": CREATED,
        "model": "command-r",
        "choices": [{"index": 0, "delta": {"role": "assistant", "content": "Hel"}, "finish_reason": None}],
    }]


def test_finished_event_with_text_emits_content_then_stop(translator):
    chunks = _decode(translator.translate(
        parse_event({"event_type": "text-generation", "text": "bye", "is_finished": True})
    ))

    assert len(chunks) == 2
    assert chunks[0]["choices"][0]["delta"] == {"role": "assistant", "content": "bye"}
    assert chunks[0]["choices"][0]["finish_reason"] is None
    assert chunks[1]["choices"][0] == {"index": 0, "delta": {}, "finish_reason": "stop"}


def test_stream_end_emits_only_stop(translator):
    chunks = _decode(translator.translate(
        parse_event({"event_type": "stream-end", "is_finished": True, "response": {"text": "full"}})
    ))
    assert [chunk["choices"][0]["finish_reason"] for chunk in chunks] == ["stop"]


def test_empty_text_emits_nothing(translator):
    assert translator.translate(parse_event({"event_type": "text-generation", "text": ""})) == []
    assert translator.translate(parse_event({"event_type": "stream-start", "generation_id": "x"})) == []


def test_tool_calls_generation_is_suppressed(translator):
    event = parse_event({
        "event_type": "tool-calls-generation",
        "text": "I will search",
        "is_finished": True,
    })
    assert translator.translate(event) == []


def test_calculator_search_result_renders_fenced_block(translator):
    chunks = _decode(translator.translate(
        _search_event({"tool_name": "calculator", "parameters": {"expression": "2+2"}})
    ))
    assert len(chunks) == 1
    assert chunks[0]["choices"][0]["delta"]["content"] == "\n```calculator\nCalc:2+2\n```\n"


def test_python_search_result_renders_code(translator):
    chunks = _decode(translator.translate(
        _search_event({"tool_name": "python_interpreter", "parameters": {"code": "x = 1"}})
    ))
    assert chunks[0]["choices"][0]["delta"]["content"] == "\n```python\nx = 1\n```\n"


def test_malformed_tool_descriptor_is_isolated(translator):
    event = parse_event({
        "event_type": "search-results",
        "search_results": [{"search_query": {"text": "plain web query"}}],
        "is_finished": True,
    })
    chunks = _decode(translator.translate(event))
    assert [chunk["choices"][0]["finish_reason"] for chunk in chunks] == ["stop"]


def test_search_results_without_query_emit_nothing(translator):
    event = parse_event({"event_type": "search-results", "search_results": [], "documents": []})
    assert translator.translate(event) == []


def test_created_is_stable_across_chunks(translator):
    frames = []
    for text in ("a", "b", "c"):
        frames.extend(translator.translate(parse_event({"event_type": "text-generation", "text": text})))
    frames.extend(translator.translate(parse_event({"event_type": "stream-end", "is_finished": True})))

    chunks = _decode(frames)
    assert {chunk["created"] for chunk in chunks} == {CREATED}
    assert {chunk["id"] for chunk in chunks} == {COMPLETION_ID}
