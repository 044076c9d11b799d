from io import BytesIO
from pptx import Presentation
from conftest import outline_json
from services.deck_assembler import DeckAssembler
from services.layout_intelligence import layout_selector
from services.ppt_builder import PPTBuilder, export_filename
from services.prompt_engine import PromptEngine

def test_renewable_energy_deck(fake_llm):
    llm = fake_llm(text=outline_json("Renewable Energy", 5, bullets=4, fenced=True))
    outline = PromptEngine(llm=llm, offline=False).request("Renewable Energy", 5)
    assert len(outline.slides) == 5

    deck = DeckAssembler(enable_images=True).assemble(outline, "forest")
    urls = [slide.image_url for slide in deck.slides]
    assert all(urls)
    assert len(set(urls)) == 5

    plans = layout_selector.preview(deck)
    assert plans[4].is_chart
    assert not any(plan.is_chart for plan in plans[:4])

    stream = PPTBuilder(theme=deck.theme).build(deck)
    prs = Presentation(BytesIO(stream.getvalue()))
    assert len(prs.slides) == 6
    assert export_filename(deck.title) == "Renewable_Energy_Today_Presentation.pptx"
