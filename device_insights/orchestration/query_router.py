"""
Query Router - narrows a snapshot to the fields a question is about.

    "How much battery do I have?"  -> {"battery": {...}, "power": {...}}
    "Is my disk or RAM full?"      -> {"storage": {...}, "memory": {...}}
    "Tell me something"            -> every field

Matching is keyword based and pure: the same prompt and snapshot always give
the same result, and nothing outside the arguments is read.
"""

import re
from typing import Any, Dict, List, Mapping, Tuple

from device_insights.orchestration.models import Snapshot

TOPIC_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "battery": ("battery", "power", "charge", "charging", "charger", "energy", "drain", "unplugged"),
    "memory": ("memory", "ram", "mem", "swap"),
    "storage": ("storage", "disk", "space", "drive", "ssd", "hdd", "full", "files"),
    "cpu": ("cpu", "processor", "performance", "slow", "speed", "fast", "load", "hot", "lag"),
    "network": ("network", "wifi", "internet", "connection", "connected", "online", "ethernet", "bandwidth"),
    "process": ("process", "processes", "app", "apps", "application", "applications", "running", "task", "tasks"),
}

TOPIC_FIELDS: Dict[str, Tuple[str, ...]] = {
    "battery": ("battery", "power"),
    "memory": ("memory",),
    "storage": ("storage",),
    "cpu": ("cpu",),
    "network": ("network",),
    "process": ("processes",),
}

_TOKEN_RE = re.compile(r"[a-z0-9]+")


def tokenize(text: str) -> List[str]:
    """Lowercase words with punctuation stripped."""
    return _TOKEN_RE.findall(text.lower())


class QueryRouter:
    """Keyword topic matching over snapshot fields."""

    def __init__(
        self,
        topic_keywords: Mapping[str, Tuple[str, ...]] = TOPIC_KEYWORDS,
        topic_fields: Mapping[str, Tuple[str, ...]] = TOPIC_FIELDS,
    ):
        self._topic_keywords = topic_keywords
        self._topic_fields = topic_fields

    def match_topics(self, prompt: str) -> List[str]:
        """Topics mentioned in the prompt, in table order."""
        tokens = set(tokenize(prompt or ""))
        return [
            topic for topic, keywords in self._topic_keywords.items()
            if tokens.intersection(keywords)
        ]

    def route(self, prompt: str, snapshot: Snapshot) -> Dict[str, Any]:
        """
        Relevant fields for a prompt.

        Falls back to the full field mapping when no topic matches, or when
        none of the matched topics has data in this snapshot, so the result
        is never empty for a non-empty snapshot.
        """
        fields = snapshot.fields
        selected: Dict[str, Any] = {}
        for topic in self.match_topics(prompt):
            for path in self._topic_fields.get(topic, ()):
                if path in fields:
                    selected[path] = fields[path]

        if not selected:
            return dict(fields)
        return selected
