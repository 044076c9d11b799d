import json
from io import BytesIO
from types import SimpleNamespace
import pytest
import requests
from PIL import Image
from services.slide_schema import Deck, Slide

class FakeLLM:
    """Stands in for ChatGoogleGenerativeAI: returns canned text, records prompts"""

    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.prompts = []

    def invoke(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=self.text)

def outline_json(topic="Renewable Energy", slide_count=5, bullets=4, fenced=False):
    payload = {
        "title": f"{topic} Today",
        "slides": [
            {
                "title": f"{topic} part {i + 1}",
                "content": [f"Point {n} about {topic}" for n in range(1, bullets + 1)],
                "imagePrompt": f"Solar panel and wind farm landscape {i + 1}",
            }
            for i in range(slide_count)
        ],
    }
    text = json.dumps(payload, indent=2)
    if fenced:
        text = f"```json\n{text}\n```"
    return text

def png_bytes(size=(20, 10), color=(200, 30, 30)):
    buf = BytesIO()
    Image.new("RGB", size, color=color).save(buf, format="PNG")
    return buf.getvalue()

@pytest.fixture
def fake_llm():
    return FakeLLM

@pytest.fixture(autouse=True)
def offline_images(monkeypatch):
    """Export never touches the network in tests; images become placeholders"""
    def _refuse(*args, **kwargs):
        raise requests.exceptions.ConnectionError("network disabled in tests")
    monkeypatch.setattr("services.ppt_builder.requests.get", _refuse)

@pytest.fixture
def serve_png(monkeypatch):
    def _get(url, timeout=None):
        return SimpleNamespace(content=png_bytes(), raise_for_status=lambda: None)
    monkeypatch.setattr("services.ppt_builder.requests.get", _get)

@pytest.fixture
def sample_deck():
    return Deck(
        title="Renewable Energy",
        theme="ocean",
        slides=[
            Slide(
                title=f"Slide {i + 1}",
                content=[f"Bullet {n}" for n in range(1, 5)],
                imagePrompt="solar power",
                imageUrl=f"https://placehold.co/800x600/F9A825/ffffff/png?text=Energy+{i + 1}",
            )
            for i in range(5)
        ],
    )
