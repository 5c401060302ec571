"""Tests for the completion service."""

import pytest

from codepair.config import settings_from_env
from codepair.context.store import SessionStore
from codepair.providers.mock import MockProvider
from codepair.service import (
    CompletionService,
    Feedback,
    ProjectFile,
    SuggestionRequest,
    current_file_path,
)
from codepair.suggestions.engine import SuggestionEngine

ENGLISH_CODE = "const total = 0;\n// create a function that adds two numbers"


@pytest.fixture
def service(clock):
    svc = CompletionService(SessionStore(clock=clock), SuggestionEngine(MockProvider()))
    yield svc
    svc.close()


class TestSuggest:
    def test_without_session(self, service):
        suggestions = service.suggest(
            SuggestionRequest(code=ENGLISH_CODE, cursor_position=len(ENGLISH_CODE))
        )
        assert suggestions[0].text == "function add(a, b) {\n  return a + b;\n}"
        assert suggestions[0].source == "mock"
        assert len(service.store) == 0

    def test_with_session_records_history(self, service):
        service.create_session("s1")
        service.suggest(
            SuggestionRequest(code=ENGLISH_CODE, cursor_position=len(ENGLISH_CODE), session_id="s1")
        )
        session = service.store.get_session("s1")
        assert session.current_file.path == "current.js"
        assert len(session.history) == 1
        entry = session.history[0]
        assert entry.type == "completion"
        assert entry.input == ENGLISH_CODE
        assert entry.metadata["language"] == "javascript"
        assert entry.output[0]["text"].startswith("function add")

    def test_unknown_session_still_suggests(self, service):
        suggestions = service.suggest(
            SuggestionRequest(code=ENGLISH_CODE, cursor_position=len(ENGLISH_CODE), session_id="ghost")
        )
        assert suggestions
        assert "ghost" not in service.store

    def test_camel_case_request(self):
        request = SuggestionRequest.model_validate(
            {"code": "x", "cursorPosition": 1, "sessionId": "s", "options": {"maxTokens": 20}}
        )
        assert request.cursor_position == 1
        assert request.session_id == "s"
        assert request.options.max_tokens == 20

    def test_current_file_path(self):
        assert current_file_path("python") == "current.py"
        assert current_file_path("cobol") == "current.txt"


class TestSessions:
    def test_create_reuses_existing(self, service):
        first = service.create_session("s1", {"editor": "vim"})
        assert service.create_session("s1") is first

    def test_feedback(self, service):
        service.create_session("s1")
        assert service.record_feedback(
            "s1", Feedback(suggestion_id="suggestion_1", final_text="return a + b;")
        )
        entry = service.store.get_session("s1").history[-1]
        assert entry.type == "suggestion"
        assert entry.input == "return a + b;"
        assert entry.output == {"suggestion_id": "suggestion_1", "accepted": True}
        assert entry.metadata == {"edited": True}

    def test_feedback_unknown_session(self, service):
        assert not service.record_feedback("ghost", Feedback(suggestion_id="x"))

    def test_sync_context_detects_framework(self, service):
        service.create_session("s1")
        framework = service.sync_context(
            "s1",
            [
                ProjectFile(
                    path="App.jsx",
                    content="import React, { useState } from 'react';",
                    language="javascript",
                )
            ],
            ["react", "react-dom"],
        )
        assert framework == "react"
        stats = service.session_stats("s1")
        assert stats.files_count == 1
        assert stats.framework == "react"

    def test_sync_context_unknown_session(self, service):
        assert service.sync_context("ghost", [], ["react"]) is None
        assert "ghost" not in service.store

    def test_health(self, service):
        health = service.health()
        assert health["status"] == "healthy"
        assert health["provider"] == "mock"


class TestMessages:
    def test_ping(self, service):
        assert service.handle_message({"type": "ping"}) == {"type": "pong"}

    def test_suggestion_request(self, service):
        reply = service.handle_message(
            {
                "type": "suggestion_request",
                "id": "req-1",
                "code": ENGLISH_CODE,
                "cursorPosition": len(ENGLISH_CODE),
                "language": "javascript",
            }
        )
        assert reply["type"] == "suggestions"
        assert reply["id"] == "req-1"
        assert reply["suggestions"][0]["text"].startswith("function add")

    def test_invalid_request(self, service):
        reply = service.handle_message(
            {"type": "suggestion_request", "code": "x", "cursorPosition": -1}
        )
        assert reply["type"] == "error"
        assert reply["error"]

    def test_unknown_type_ignored(self, service):
        assert service.handle_message({"type": "shrug"}) is None


class TestFromSettings:
    def test_chat_gets_mock_fallback(self):
        service = CompletionService.from_settings(settings_from_env({"CODEPAIR_PROVIDER": "chat"}))
        try:
            assert service.provider_name == "chat"
            assert service.engine.fallback.name == "mock"
        finally:
            service.close()

    def test_no_fallback_by_default(self):
        service = CompletionService.from_settings(settings_from_env({}))
        try:
            assert service.engine.provider.name == "mock"
            assert service.engine.fallback is None
        finally:
            service.close()


class TestClientFlow:
    def test_prompt_uses_session_files(self, service):
        service.create_session("s1")
        service.sync_context(
            "s1",
            [
                ProjectFile(
                    path="math.js",
                    content="export function add(a, b) { return a + b; }",
                    language="javascript",
                )
            ],
        )
        code = "const sum = add(a, b);\nreturn "
        result = service.build_client_prompt(
            SuggestionRequest(code=code, cursor_position=len(code), session_id="s1")
        )
        assert "Related file math.js" in result["prompt"]
        assert "Complete the following javascript code" in result["prompt"]
        assert result["context"] == {
            "language": "javascript",
            "cursor_position": len(code),
            "session_id": "s1",
        }
        assert service.store.get_session("s1").current_file.path == "current.js"
        assert service.engine.provider.calls == 0

    def test_prompt_without_session(self, service):
        result = service.build_client_prompt(
            SuggestionRequest(code=ENGLISH_CODE, cursor_position=len(ENGLISH_CODE))
        )
        assert '"create a function that adds two numbers"' in result["prompt"]
        assert result["context"]["session_id"] is None

    def test_process_chat_response(self, service):
        code = "function add(a, b) {\n  "
        suggestions = service.process_client_response(
            {"message": {"role": "assistant", "content": "```js\nreturn a + b;\n```"}},
            code,
            len(code),
            "javascript",
        )
        assert [s.text for s in suggestions] == ["return a + b;"]
        assert suggestions[0].source == "client"
        assert suggestions[0].range.start.line == 1

    def test_process_plain_text(self, service):
        suggestions = service.process_client_response("x = 1", "", 0, "python")
        assert [s.text for s in suggestions] == ["x = 1"]

    @pytest.mark.parametrize("raw", [42, None, {"data": "x"}])
    def test_unrecognized_response(self, service, raw):
        assert service.process_client_response(raw, "let a", 5) == []
