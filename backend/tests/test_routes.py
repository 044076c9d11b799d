import json
import pytest
from fastapi.testclient import TestClient
from conftest import outline_json
from core.errors import FormatError, GenerationError
from services.prompt_engine import parse_outline_text
import api.routes as routes
from services.session_service import session_service
from main import app

class FakeEngine:
    calls = []
    error = None

    def request(self, topic, slide_count):
        FakeEngine.calls.append((topic, slide_count))
        if FakeEngine.error is not None:
            raise FakeEngine.error
        return parse_outline_text(outline_json(topic, slide_count), topic, slide_count).outline

@pytest.fixture
def client(monkeypatch):
    FakeEngine.calls = []
    FakeEngine.error = None
    monkeypatch.setattr(routes, "PromptEngine", FakeEngine)
    return TestClient(app)

def parse_sse(body: str):
    events = []
    for block in body.strip().split("\n\n"):
        lines = block.split("\n")
        events.append((lines[0][len("event: "):], json.loads(lines[1][len("data: "):])))
    return events

def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}

def test_themes(client):
    body = client.get("/themes").json()
    assert len(body["themes"]) == 9
    assert body["themes"][0]["id"] == "light"

@pytest.mark.parametrize("payload", [{}, {"topic": ""}, {"topic": "   "}, {"topic": 42}])
def test_missing_topic_is_rejected_before_generation(client, payload):
    response = client.post("/generate", json=payload)
    assert response.status_code == 400
    assert FakeEngine.calls == []

@pytest.mark.parametrize("count", [3, 11, "5", True])
def test_slide_count_out_of_range(client, count):
    response = client.post("/generate", json={"topic": "Energy", "slide_count": count})
    assert response.status_code == 400
    assert FakeEngine.calls == []

def test_invalid_json_body(client):
    response = client.post("/generate", content=b"{not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400

def test_generate_returns_deck_with_unique_images(client):
    response = client.post("/generate", json={"topic": "Renewable Energy", "slide_count": 5, "theme": "sunset"})
    assert response.status_code == 200
    body = response.json()
    slides = body["deck"]["slides"]
    assert len(slides) == 5
    urls = [s["imageUrl"] for s in slides]
    assert all(urls) and len(set(urls)) == 5
    assert body["deck"]["theme"] == "sunset"
    assert body["filename"] == "Renewable_Energy_Today_Presentation.pptx"
    assert body["preview"][4]["is_chart"] is True
    assert body["stale"] is False

@pytest.mark.parametrize("error", [FormatError("bad json"), GenerationError("timeout")])
def test_provider_failures_look_the_same_to_users(client, error):
    FakeEngine.error = error
    response = client.post("/generate", json={"topic": "Energy", "slide_count": 5})
    assert response.status_code == 502
    assert response.json()["detail"] == "Failed to generate presentation content. Please try again."

def test_session_flow_theme_and_export(client):
    session_id = "flow-session"
    body = client.post("/generate", json={"topic": "Ocean Life", "slide_count": 4, "session_id": session_id}).json()
    assert body["session_id"] == session_id
    assert body["sequence"] == 1

    assert client.get(f"/sessions/{session_id}/deck").json()["deck"]["title"] == "Ocean Life Today"

    themed = client.post(f"/sessions/{session_id}/theme", json={"theme": "royal"}).json()
    assert themed["deck"]["theme"] == "royal"

    preview = client.get(f"/sessions/{session_id}/preview").json()
    assert len(preview["slides"]) == 4

    export = client.get(f"/sessions/{session_id}/export")
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("application/vnd.openxmlformats")
    assert "Ocean_Life_Today_Presentation.pptx" in export.headers["content-disposition"]

def test_unknown_session(client):
    assert client.get("/sessions/nope/deck").status_code == 404
    assert client.post("/sessions/nope/theme", json={"theme": "dark"}).status_code == 404

@pytest.mark.parametrize("session_id", [["x"], 7, {"id": "x"}, ""])
def test_malformed_session_id_is_rejected(client, session_id):
    payload = {"topic": "Energy", "slide_count": 5, "session_id": session_id}
    assert client.post("/generate", json=payload).status_code == 400
    assert client.post("/generate/stream", json=payload).status_code == 400
    assert FakeEngine.calls == []

def test_generate_without_session_is_not_stored(client):
    before = session_service.session_count()
    for _ in range(3):
        body = client.post("/generate", json={"topic": "Energy", "slide_count": 4}).json()
        assert body["session_id"] is None
        assert body["stale"] is False
    with client.stream("POST", "/generate/stream", json={"topic": "Energy", "slide_count": 4}) as response:
        events = parse_sse("".join(response.iter_text()))
    assert events[-1][0] == "deck_complete"
    assert session_service.session_count() == before

def test_export_posted_deck(client, sample_deck):
    response = client.post("/export", json=sample_deck.model_dump(by_alias=True))
    assert response.status_code == 200
    assert response.content[:2] == b"PK"

def test_preview_posted_deck(client, sample_deck):
    slides = client.post("/preview", json=sample_deck.model_dump(by_alias=True)).json()["slides"]
    assert [s["layout"] for s in slides] == [0, 1, 2, 0, 1]

def test_stream_reports_progress_and_completion(client):
    with client.stream("POST", "/generate/stream", json={"topic": "Solar Power", "slide_count": 4}) as response:
        body = "".join(response.iter_text())
    events = parse_sse(body)
    names = [name for name, _ in events]
    assert names[0] == "started"
    assert names[1] == "outline_ready"
    assert names[-1] == "deck_complete"
    progress = [data["progress"] for name, data in events if name == "slide_image"]
    assert progress == [25, 50, 75, 100]
    assert events[-1][1]["stale"] is False

def test_stream_reports_generation_error(client):
    FakeEngine.error = GenerationError("down")
    with client.stream("POST", "/generate/stream", json={"topic": "Solar Power", "slide_count": 4}) as response:
        events = parse_sse("".join(response.iter_text()))
    assert [name for name, _ in events] == ["started", "error"]
