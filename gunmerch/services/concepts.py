"""Turns a trending topic into a t-shirt concept (title, slogan, description).

The LLM is preferred; without a key, or when the call fails, the topic is
classified by keyword and a slogan is drawn from the category's template bank.
"""
import logging
import random
import re

import httpx

from ..errors import GunmerchError
from ..storage.activity_log import ActivityLog
from ..storage.settings import SettingsStore
from .openai_svc import SYSTEM_PROMPT, OpenAIChatClient

logger = logging.getLogger(__name__)

DESIGN_TEMPLATES = {
    "ammo": [
        "I dont always reload, but when I do... I have anxiety.",
        "Keep calm and carry 9mm.",
        "Ammo is the new Bitcoin.",
    ],
    "rights": [
        "Shall not be infringed.",
        "Molon Labe.",
        "Come and take it.",
    ],
    "humor": [
        "Boating accident survivor.",
        "My other car is a tactical golf cart.",
        "I work out so I can carry more ammo.",
    ],
    "politics": [
        "ATF: Always Taxing Freedom.",
        "Concealed is concealed.",
        "The Second Amendment is my permit.",
    ],
    "enthusiast": [
        "Guns and coffee.",
        "Veteran owned, American made.",
        "Life, liberty, and the pursuit of suppressors.",
    ],
}
DEFAULT_CATEGORY = "humor"

# Checked in order; first hit wins.
CATEGORY_KEYWORDS = {
    "ammo": ("ammo", "ammunition", "9mm", "5.56", "223", "bullet", "reload"),
    "rights": ("second amendment", "2a", "right", "freedom", "constitution", "infringed"),
    "politics": ("atf", "law", "bill", "legislation", "ban", "control", "regulation"),
    "enthusiast": ("veteran", "military", "tactical", "edc", "concealed"),
}

PROMPT_TEMPLATE = """Create a t-shirt design concept based on this trending topic: '{topic}'

Please provide:
1. A catchy title for the design (max 5 words)
2. The main text/slogan for the t-shirt (keep it short, punchy, max 10 words). \
The slogan must read as one continuous, naturally flowing sentence. Do not break it \
up with line breaks, separators, emoji, or cues for graphics between the words.
3. A brief concept description explaining the joke/reference

Format your response like this:
Title: [Your Title Here]
Slogan: [Your Slogan Here]
Concept: [Your Concept Description]"""

_TITLE_RE = re.compile(r"Title:\s*(.+)", re.IGNORECASE)
_SLOGAN_RE = re.compile(r"Slogan:\s*(.+)", re.IGNORECASE)
_CONCEPT_RE = re.compile(r"Concept:\s*(.+)", re.IGNORECASE | re.DOTALL)


def categorize_topic(topic: str) -> str:
    topic_lower = (topic or "").lower()
    for category, words in CATEGORY_KEYWORDS.items():
        if any(word in topic_lower for word in words):
            return category
    return DEFAULT_CATEGORY


def build_prompt(topic: str) -> str:
    return PROMPT_TEMPLATE.format(topic=" ".join(str(topic).split()))


def _strip_markup(value: str) -> str:
    value = value.strip().strip("*").strip()
    if len(value) > 1 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1]
    return value.strip()


def parse_ai_response(content: str, topic: str) -> dict:
    """Pull the three labelled fields out of the model text, backfilling misses."""
    design = {"title": "", "design_text": "", "concept": ""}
    if m := _TITLE_RE.search(content or ""):
        design["title"] = _strip_markup(m.group(1))
    if m := _SLOGAN_RE.search(content or ""):
        design["design_text"] = _strip_markup(m.group(1))
    if m := _CONCEPT_RE.search(content or ""):
        design["concept"] = _strip_markup(m.group(1))

    if not design["title"]:
        design["title"] = topic
    if not design["design_text"]:
        design["design_text"] = topic
    if not design["concept"]:
        design["concept"] = f"Design inspired by trending topic: {topic}"
    return design


class ConceptGenerator:
    def __init__(self, llm: OpenAIChatClient, activity: ActivityLog, settings: SettingsStore,
                 rng: random.Random | None = None):
        self.llm = llm
        self.activity = activity
        self.settings = settings
        self.rng = rng or random.Random()

    def _margin(self) -> float:
        return float(self.settings.get("default_margin", 40))

    def generate_with_llm(self, topic: str) -> dict | None:
        prompt = build_prompt(topic)
        try:
            content = self.llm.complete(SYSTEM_PROMPT, prompt)
        except (httpx.HTTPError, GunmerchError, ValueError) as e:
            self.activity.log_api_call("openai", "/v1/chat/completions", {"prompt": prompt}, str(e), False)
            return None
        self.activity.log_api_call("openai", "/v1/chat/completions", {"prompt": prompt}, content, True)
        return parse_ai_response(content, topic)

    def generate_from_template(self, topic: str) -> dict:
        category = categorize_topic(topic)
        templates = DESIGN_TEMPLATES.get(category) or DESIGN_TEMPLATES[DEFAULT_CATEGORY]
        return {
            "title": topic,
            "design_text": self.rng.choice(templates),
            "concept": f"AI-generated concept based on trending topic: {topic}",
            "category": category,
        }

    def create_design_from_trend(self, trend: dict) -> dict:
        """Always returns a draft; parse misses and LLM failures degrade to templates."""
        topic = " ".join(str(trend.get("topic") or "").split())
        concept = None
        if self.llm.is_configured:
            concept = self.generate_with_llm(topic)
            if concept is None:
                logger.info("LLM unavailable for %r, using template bank", topic)
        if concept is None:
            concept = self.generate_from_template(topic)

        return {
            "title": concept["title"],
            "concept": concept["concept"],
            "design_text": concept["design_text"],
            "design_type": "text",
            "trend_topic": topic,
            "trend_source": trend.get("source_url") or "",
            "estimated_margin": self._margin(),
        }
