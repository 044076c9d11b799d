from urllib.parse import quote
from fastapi import APIRouter, HTTPException, Request, Response
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool
from core.config import settings
from core.errors import (
    GENERATION_FAILED_MESSAGE, ExportError, FormatError, GenerationError, ValidationError,
)
from core.logger import get_logger
from services.deck_assembler import DeckAssembler
from services.layout_intelligence import layout_selector
from services.ppt_builder import PPTBuilder, PPTX_MEDIA_TYPE, export_filename
from services.prompt_engine import PromptEngine
from services.session_service import format_event, session_service
from services.slide_schema import Deck
from services.theme_manager import ThemeManager

router = APIRouter()
logger = get_logger("api.routes")

def parse_generate_request(data) -> dict:
    """Validate the generation input before anything reaches the provider"""
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    topic = data.get("topic")
    if not isinstance(topic, str) or not topic.strip():
        raise ValidationError("Please provide a topic for your presentation.")

    slide_count = data.get("slide_count", data.get("slideCount", settings.default_slide_count))
    if isinstance(slide_count, bool) or not isinstance(slide_count, int):
        raise ValidationError("'slide_count' must be an integer")
    if not settings.min_slides <= slide_count <= settings.max_slides:
        raise ValidationError(f"'slide_count' must be between {settings.min_slides} and {settings.max_slides}")

    session_id = data.get("session_id")
    if session_id is not None and (not isinstance(session_id, str) or not session_id.strip()):
        raise ValidationError("'session_id' must be a non-empty string")
    stored_theme = session_service.get_theme(session_id) if session_id else None
    theme = data.get("theme") or stored_theme or settings.default_theme
    return {
        "topic": topic.strip(),
        "slide_count": slide_count,
        "theme": ThemeManager.normalize_theme(theme),
        "session_id": session_id,
    }

async def _read_json(request: Request):
    try:
        return await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")

def _validated(data) -> dict:
    try:
        return parse_generate_request(data)
    except ValidationError as e:
        logger.error(f"Invalid generation request: {e}")
        raise HTTPException(status_code=400, detail=str(e))

def _deck_payload(deck: Deck) -> dict:
    return {
        "deck": deck.model_dump(by_alias=True),
        "preview": layout_selector.describe(deck),
        "filename": export_filename(deck.title),
    }

def _export_response(deck: Deck) -> Response:
    try:
        pptx_stream = PPTBuilder(theme=deck.theme).build(deck)
    except ExportError as e:
        raise HTTPException(status_code=500, detail=str(e))
    filename = export_filename(deck.title)
    return Response(
        content=pptx_stream.getvalue(),
        media_type=PPTX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )

def _session_deck(session_id: str) -> Deck:
    deck = session_service.get_deck(session_id)
    if deck is None:
        raise HTTPException(status_code=404, detail="No presentation for this session")
    return deck

@router.get("/themes")
def list_themes():
    return {"default": settings.default_theme, "themes": ThemeManager.list_themes()}

@router.post("/generate")
async def generate_presentation(request: Request):
    params = _validated(await _read_json(request))
    session_id = params["session_id"]
    # Without a session the deck is returned but never stored
    sequence = session_service.begin_request(session_id) if session_id else None

    engine = PromptEngine()
    try:
        outline = await run_in_threadpool(engine.request, params["topic"], params["slide_count"])
    except FormatError as e:
        logger.error(f"Format error for topic '{params['topic']}': {e}")
        raise HTTPException(status_code=502, detail=GENERATION_FAILED_MESSAGE)
    except GenerationError as e:
        logger.error(f"Generation error for topic '{params['topic']}': {e}")
        raise HTTPException(status_code=502, detail=GENERATION_FAILED_MESSAGE)

    deck = DeckAssembler().assemble(outline, params["theme"], topic=params["topic"])
    landed = session_service.publish(session_id, sequence, deck) if session_id else True
    return {
        "session_id": session_id,
        "sequence": sequence,
        "stale": not landed,
        **_deck_payload(deck),
    }

def _generation_events(params: dict, sequence: int):
    session_id = params["session_id"]
    yield format_event("started", {
        "session_id": session_id,
        "sequence": sequence,
        "topic": params["topic"],
        "slide_count": params["slide_count"],
        "theme": params["theme"],
    })

    try:
        outline = PromptEngine().request(params["topic"], params["slide_count"])
    except (GenerationError, FormatError) as e:
        logger.error(f"{type(e).__name__} during streamed generation for '{params['topic']}': {e}")
        yield format_event("error", {"message": GENERATION_FAILED_MESSAGE})
        return

    yield format_event("outline_ready", {
        "title": outline.title,
        "slide_titles": [slide.title for slide in outline.slides],
    })

    deck = None
    for snapshot in DeckAssembler().iter_assembly(outline, params["theme"], topic=params["topic"]):
        if session_id and not session_service.is_current(session_id, sequence):
            yield format_event("superseded", {"sequence": sequence})
            return
        deck = snapshot.deck
        if snapshot.completed == 0:
            continue
        slide = deck.slides[snapshot.completed - 1]
        yield format_event("slide_image", {
            "slide_index": snapshot.completed - 1,
            "image_url": slide.image_url,
            "progress": snapshot.progress,
        })

    landed = session_service.publish(session_id, sequence, deck) if session_id else True
    yield format_event("deck_complete", {"stale": not landed, **_deck_payload(deck)})

@router.post("/generate/stream")
async def stream_presentation(request: Request):
    """Stream generation progress using Server-Sent Events"""
    params = _validated(await _read_json(request))
    session_id = params["session_id"]
    sequence = session_service.begin_request(session_id) if session_id else None
    return StreamingResponse(
        _generation_events(params, sequence),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )

@router.get("/sessions/{session_id}/deck")
def get_session_deck(session_id: str):
    return _deck_payload(_session_deck(session_id))

@router.post("/sessions/{session_id}/theme")
async def set_session_theme(session_id: str, request: Request):
    data = await _read_json(request)
    theme = data.get("theme") if isinstance(data, dict) else None
    if not session_service.has_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    deck = session_service.set_theme(session_id, theme)
    return {"session_id": session_id, "theme": ThemeManager.normalize_theme(theme),
            "deck": deck.model_dump(by_alias=True) if deck else None}

@router.get("/sessions/{session_id}/preview")
def get_session_preview(session_id: str):
    return {"slides": layout_selector.describe(_session_deck(session_id))}

@router.get("/sessions/{session_id}/export")
def export_session_deck(session_id: str):
    return _export_response(_session_deck(session_id))

@router.delete("/sessions/{session_id}")
def end_session(session_id: str):
    session_service.end_session(session_id)
    return {"status": "ended"}

@router.post("/preview")
def preview_deck(deck: Deck):
    return {"slides": layout_selector.describe(deck)}

@router.post("/export")
def export_deck(deck: Deck):
    return _export_response(deck)
