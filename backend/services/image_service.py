import random
import re
import threading
from typing import List, MutableSet, NamedTuple, Optional, Sequence, Tuple
from urllib.parse import quote_plus
from core.logger import get_logger

logger = get_logger("image_service")

PLACEHOLDER_SIZE = "800x600"

def _placeholder(color: str, label: str, size: str = PLACEHOLDER_SIZE) -> str:
    return f"https://placehold.co/{size}/{color}/ffffff/png?text={quote_plus(label)}"

class TopicBucket(NamedTuple):
    name: str
    keywords: Tuple[str, ...]
    urls: Tuple[str, ...]

def _bucket(name: str, color: str, keywords: Sequence[str], labels: Sequence[str]) -> TopicBucket:
    return TopicBucket(name, tuple(keywords), tuple(_placeholder(color, label) for label in labels))

# Declaration order is the tie-break order when two buckets score the same
TOPIC_BUCKETS: Tuple[TopicBucket, ...] = (
    _bucket("technology", "795548", (
        "technology", "computer", "software", "digital", "artificial intelligence",
        "machine learning", "data science", "programming", "robot", "cloud computing",
        "internet", "cyber", "network", "innovation", "automation",
    ), ("Technology", "Digital World", "Software", "Circuit Board", "Innovation Lab", "Data Center")),
    _bucket("business", "607D8B", (
        "business", "corporate", "office", "meeting", "strategy", "marketing",
        "management", "leadership", "startup", "teamwork", "sales", "customer",
        "business plan", "market share",
    ), ("Business", "Team Meeting", "Strategy", "Office Space", "Growth Plan", "Leadership")),
    _bucket("finance", "3F51B5", (
        "finance", "money", "investment", "economy", "economic", "banking", "stock",
        "budget", "revenue", "profit", "stock market", "financial planning",
    ), ("Finance", "Investment", "Market Chart", "Banking", "Economy", "Savings")),
    _bucket("education", "009688", (
        "education", "school", "student", "learning", "teacher", "classroom",
        "university", "study", "knowledge", "training", "online learning", "higher education",
    ), ("Education", "Classroom", "Students", "Library", "Graduation", "Study Desk")),
    _bucket("energy", "F9A825", (
        "energy", "renewable", "solar", "wind", "power", "electricity", "battery",
        "fuel", "turbine", "renewable energy", "solar panel", "wind farm", "clean energy",
        "power grid",
    ), ("Solar Panels", "Wind Turbines", "Clean Energy", "Power Grid", "Hydro Power", "Battery Storage")),
    _bucket("nature", "4CAF50", (
        "nature", "environment", "forest", "climate", "earth", "ocean", "wildlife",
        "green", "sustainab", "ecosystem", "landscape", "tree", "climate change",
        "natural resources",
    ), ("Nature", "Forest", "Green Earth", "Ocean View", "Wildlife", "Mountains")),
    _bucket("health", "E53935", (
        "health", "medical", "medicine", "doctor", "hospital", "wellness", "fitness",
        "nutrition", "patient", "disease", "healthcare", "mental health", "public health",
    ), ("Healthcare", "Medical Team", "Wellness", "Fitness", "Nutrition", "Hospital")),
    _bucket("science", "8BC34A", (
        "science", "research", "laboratory", "experiment", "chemistry", "physics",
        "biology", "molecule", "scientific", "discovery", "dna", "scientific method",
    ), ("Science", "Laboratory", "Research", "Microscope", "Molecules", "Discovery")),
    _bucket("space", "1A237E", (
        "space", "planet", "astronomy", "galaxy", "rocket", "satellite", "universe",
        "star", "nasa", "solar system", "outer space",
    ), ("Outer Space", "Galaxy", "Planets", "Rocket Launch", "Satellite", "Night Sky")),
    _bucket("culture", "AD1457", (
        "culture", "history", "heritage", "tradition", "ancient", "historical",
        "architecture", "festival", "civilization", "museum", "cultural heritage",
    ), ("Culture", "Heritage", "Architecture", "History", "Festival", "Museum")),
    _bucket("travel", "00ACC1", (
        "travel", "tourism", "city", "country", "journey", "destination", "geograph",
        "adventure", "vacation", "landmark", "road trip",
    ), ("Travel", "City Skyline", "Landmarks", "Journey", "Destination", "Map")),
    _bucket("food", "FF7043", (
        "food", "cuisine", "cooking", "restaurant", "recipe", "agriculture", "farm",
        "meal", "kitchen", "healthy eating",
    ), ("Cuisine", "Cooking", "Fresh Produce", "Farm", "Restaurant", "Kitchen")),
    _bucket("art", "E91E63", (
        "art", "design", "creative", "music", "painting", "photography", "fashion",
        "film", "graphic design", "visual art",
    ), ("Art", "Design Studio", "Creativity", "Music", "Gallery", "Photography")),
    _bucket("sports", "FF9800", (
        "sport", "football", "soccer", "basketball", "athlete", "olympic", "cricket",
        "tennis", "game day", "team sport",
    ), ("Sports", "Stadium", "Athletes", "Competition", "Training", "Victory")),
)

# Explicit overrides consulted only when no bucket matched
SPECIAL_CASES: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"\bos\b|operating system"), _placeholder("263238", "Operating System")),
)

GENERIC_URLS: Tuple[str, ...] = (
    "https://placehold.co/600x400/4f46e5/ffffff/png?text=AI+Generated+Image",
    "https://placehold.co/600x400/6366f1/ffffff/png?text=Presentation+Visual",
    "https://placehold.co/600x400/8b5cf6/ffffff/png?text=Slide+Image",
    "https://placehold.co/600x400/7c3aed/ffffff/png?text=Generated+Graphic",
    "https://placehold.co/600x400/4338ca/ffffff/png?text=Key+Concept",
    "https://placehold.co/600x400/5b21b6/ffffff/png?text=Overview",
)

def score_bucket(bucket: TopicBucket, normalized_prompt: str) -> int:
    """Phrase keywords weigh 2, single words weigh 1"""
    score = 0
    for keyword in bucket.keywords:
        if keyword in normalized_prompt:
            score += 2 if " " in keyword else 1
    return score

def rank_buckets(prompt: str, buckets: Sequence[TopicBucket] = TOPIC_BUCKETS) -> List[Tuple[TopicBucket, int]]:
    """Buckets with a positive score, best first; ties keep declaration order"""
    normalized = (prompt or "").lower()
    scored = [(bucket, score_bucket(bucket, normalized)) for bucket in buckets]
    candidates = [item for item in scored if item[1] > 0]
    return sorted(candidates, key=lambda item: -item[1])

class ImageService:
    """Chooses an illustrative image URL for a slide's image prompt.

    No image model is involved: prompts are matched against keyword
    buckets of curated placeholder URLs. ``used_images`` is owned by the
    caller and scoped to a single deck; every returned URL is added to it.
    """

    def __init__(self, buckets: Sequence[TopicBucket] = TOPIC_BUCKETS, rng: Optional[random.Random] = None):
        self.buckets = tuple(buckets)
        self.rng = rng or random.Random()
        # Guards check-then-add on used_images when slides resolve concurrently
        self._lock = threading.Lock()

    def resolve(self, prompt: str, used_images: MutableSet[str]) -> str:
        with self._lock:
            url, source = self._choose(prompt, used_images)
            used_images.add(url)
        logger.debug(f"Resolved image from '{source}' for prompt: {prompt[:60] if prompt else ''}")
        return url

    def _choose(self, prompt: str, used_images: MutableSet[str]) -> Tuple[str, str]:
        ranked = rank_buckets(prompt, self.buckets)
        if ranked:
            for bucket, _ in ranked:
                unused = [url for url in bucket.urls if url not in used_images]
                if unused:
                    return self.rng.choice(unused), bucket.name
            top_bucket = ranked[0][0]
            logger.info(f"Bucket '{top_bucket.name}' exhausted, reusing an image")
            return self.rng.choice(top_bucket.urls), top_bucket.name

        normalized = (prompt or "").lower()
        for pattern, url in SPECIAL_CASES:
            if pattern.search(normalized):
                return url, "special"

        unused = [url for url in GENERIC_URLS if url not in used_images]
        return self.rng.choice(unused or list(GENERIC_URLS)), "generic"

# Global instance
image_service = ImageService()
