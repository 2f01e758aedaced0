"""Tests for the FastAPI surface in main.py."""

import json

import pytest
from fastapi.testclient import TestClient

import main
from textcall_core.errors import ModelBackendError
from tests.helpers import FakeModel

AUTH = {"Authorization": "Bearer test-key"}
ADD_CALL = ['name":"Add","parameters":{"number1":2,', '"number2":3}}']
USER_TURN = [{"role": "User", "content": "What is 2+3?"}]


class StubTokenCounter:
    def usage(self, prompts, completion: str):
        prompt_tokens = sum(len(prompt.split()) for prompt in prompts)
        completion_tokens = len(completion.split())
        return {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        }


@pytest.fixture
def use_model(monkeypatch):
    monkeypatch.setattr(main, "token_counter", StubTokenCounter())

    def _install(*scripts) -> FakeModel:
        model = FakeModel(*scripts)
        monkeypatch.setattr(main.orchestrator, "model", model)
        return model

    return _install


@pytest.fixture
def client():
    return TestClient(main.app)


def _sse_payloads(text: str):
    payloads = []
    for line in text.splitlines():
        if line.startswith("data: "):
            data = line[len("data: "):]
            payloads.append(data if data == "[DONE]" else json.loads(data))
    return payloads


class TestServiceEndpoints:
    def test_root_reports_status(self, client):
        body = client.get("/").json()
        assert body["config"]["upstream"] == "test-backend"
        assert body["config"]["functions_count"] == 3

    def test_functions_requires_valid_key(self, client):
        assert client.get("/v1/functions", headers={"Authorization": "Bearer wrong"}).status_code == 401
        assert client.get("/v1/functions").status_code == 422

    def test_functions_catalog(self, client):
        response = client.get("/v1/functions", headers=AUTH)
        assert response.status_code == 200
        body = response.json()
        assert body["object"] == "list"
        assert [entry["function"]["name"] for entry in body["data"]] == ["Sqrt", "Add", "Summarize"]


class TestDialogueCompletions:
    def test_plain_turn(self, client, use_model):
        model = use_model(["Hello", " there"])
        response = client.post("/v1/dialogue/completions", headers=AUTH, json={
            "messages": [{"role": "User", "content": "Hi"}],
            "auto_invoke": False,
        })

        assert response.status_code == 200
        body = response.json()
        assert body["content"] == "Hello there"
        assert body["messages"] == [
            {"role": "User", "content": "Hi"},
            {"role": "Assistant", "content": "Hello there"},
        ]
        assert body["usage"]["completion_tokens"] == 2
        assert model.prompts == ["User: Hi\nAssistant: "]
        assert model.settings[0].max_tokens == 64

    def test_function_call_turn(self, client, use_model):
        model = use_model(ADD_CALL, ["The sum is 5."])
        response = client.post("/v1/dialogue/completions", headers=AUTH, json={
            "messages": USER_TURN,
            "max_tokens": 10,
        })

        assert response.status_code == 200
        body = response.json()
        assert body["content"] == "The sum is 5."
        assert [m["role"] for m in body["messages"]] == [
            "System", "User", "FunctionCall", "FunctionResult", "Assistant",
        ]
        assert body["messages"][0]["content"] == main.FUNCTION_PROMPT
        assert body["messages"][3]["content"] == "5"
        assert model.prompts[0].startswith("System: " + main.FUNCTION_PROMPT)
        assert all(s.max_tokens == 10 for s in model.settings)
        assert len(model.prompts) == 2
        assert body["usage"]["prompt_tokens"] == sum(len(p.split()) for p in model.prompts)

    def test_function_prompt_not_injected_twice(self, client, use_model):
        model = use_model(["I think not"], ["No call"])
        messages = [{"role": "System", "content": main.FUNCTION_PROMPT}] + USER_TURN
        body = client.post("/v1/dialogue/completions", headers=AUTH, json={"messages": messages}).json()

        assert [m["role"] for m in body["messages"]] == ["System", "User", "Assistant"]
        assert model.prompts[0].count(main.FUNCTION_PROMPT) == 1

    def test_request_stop_sequences_are_forwarded(self, client, use_model):
        model = use_model(["ok"])
        client.post("/v1/dialogue/completions", headers=AUTH, json={
            "messages": USER_TURN,
            "auto_invoke": False,
            "stop": ["END"],
        })
        assert {"END", "User:", "Assistant:", "System:"} <= model.settings[0].stop_sequences

    def test_streaming_turn(self, client, use_model):
        use_model(ADD_CALL, ["The sum", " is 5."])
        response = client.post("/v1/dialogue/completions", headers=AUTH, json={
            "messages": USER_TURN,
            "stream": True,
        })

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        payloads = _sse_payloads(response.text)
        assert payloads[-1] == "[DONE]"
        assert [p["content"] for p in payloads[:-2]] == ["The sum", " is 5."]
        assert payloads[-2]["messages"][-1] == {"role": "Assistant", "content": "The sum is 5."}

    def test_streaming_backend_failure_sends_error_chunk(self, client, use_model):
        use_model(ModelBackendError("Upstream service temporarily unavailable", 503))
        response = client.post("/v1/dialogue/completions", headers=AUTH, json={
            "messages": USER_TURN,
            "stream": True,
        })

        payloads = _sse_payloads(response.text)
        assert payloads[0]["error"]["type"] == "upstream_error"
        assert payloads[-1] == "[DONE]"

    def test_backend_failure_is_bad_gateway(self, client, use_model):
        use_model(ModelBackendError("Upstream service temporarily unavailable", 503))
        response = client.post("/v1/dialogue/completions", headers=AUTH, json={"messages": USER_TURN})

        assert response.status_code == 502
        assert response.json()["error"]["type"] == "upstream_error"

    def test_unknown_role_is_rejected(self, client, use_model):
        use_model(["unused"])
        response = client.post("/v1/dialogue/completions", headers=AUTH, json={
            "messages": [{"role": "Narrator", "content": "Once upon a time"}],
        })

        assert response.status_code == 422
        assert response.json()["error"]["type"] == "invalid_request_error"

    def test_wrong_key_is_rejected(self, client, use_model):
        use_model(["unused"])
        response = client.post(
            "/v1/dialogue/completions",
            headers={"Authorization": "Bearer nope"},
            json={"messages": USER_TURN},
        )
        assert response.status_code == 401
