"""Rule-based task classification and entity extraction.

Everything here is a pure function of the input text: keyword tables are
checked in declaration order and the first table with a hit wins.
"""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

from smart_tasks.models import ClassificationResult, ExtractedEntities


# Order matters: first match wins.
CATEGORY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("scheduling", ("meeting", "schedule", "call", "appointment", "deadline", "calendar", "plan", "timeline")),
    ("finance", ("payment", "invoice", "bill", "budget", "cost", "expense", "financial", "money", "fund")),
    ("technical", ("bug", "fix", "error", "install", "repair", "maintain", "software", "hardware", "system", "server", "network")),
    ("safety", ("safety", "hazard", "inspection", "compliance", "ppe", "emergency", "security", "risk", "accident")),
)
DEFAULT_CATEGORY = "general"

# "important" is in both tables, so it always resolves to high.
PRIORITY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("high", ("urgent", "asap", "immediately", "today", "critical", "emergency", "rush", "important")),
    ("medium", ("soon", "this week", "important", "need", "required")),
)
DEFAULT_PRIORITY = "low"

# digits and word boundaries are ASCII-only
DATE_PATTERNS = [
    re.compile(r"\b(today|tomorrow)\b", re.ASCII),
    re.compile(r"\b(\d{1,2}/\d{1,2}/\d{4})\b", re.ASCII),
    re.compile(r"\b(\d{1,2}-\d{1,2}-\d{4})\b", re.ASCII),
    re.compile(
        r"\b(january|february|march|april|may|june|july|august"
        r"|september|october|november|december)\b",
        re.ASCII,
    ),
]

# Case-sensitive on purpose and run against the lower-cased text, so it
# never fires. See DESIGN.md before changing this.
PERSON_PATTERNS = [
    re.compile(r"(?:with|by|assign to|assigned to)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)"),
]

ACTION_VERBS = ["review", "check", "create", "update", "fix", "install", "meet", "call", "inspect"]

SUGGESTED_ACTIONS: Dict[str, List[str]] = {
    "scheduling": ["Block calendar", "Send invite", "Prepare agenda", "Set reminder", "Confirm attendance"],
    "finance": ["Check budget", "Get approval", "Generate invoice", "Update records", "Review costs"],
    "technical": ["Diagnose issue", "Check resources", "Assign technician", "Document fix", "Test solution"],
    "safety": ["Conduct inspection", "File report", "Notify supervisor", "Update checklist", "Provide training"],
    "general": ["Review requirements", "Assign owner", "Set deadline", "Monitor progress", "Follow up"],
}


def _first_match(text: str, table: Tuple[Tuple[str, Tuple[str, ...]], ...], default: str) -> str:
    for label, keywords in table:
        if any(keyword in text for keyword in keywords):
            return label
    return default


def extract_entities(text: str) -> ExtractedEntities:
    """Scan already lower-cased text for dates, persons and action verbs."""
    entities = ExtractedEntities()

    for pattern in DATE_PATTERNS:
        entities.dates.extend(match.lower() for match in pattern.findall(text))

    for pattern in PERSON_PATTERNS:
        entities.persons.extend(match.group(1) for match in pattern.finditer(text))

    entities.actions.extend(verb for verb in ACTION_VERBS if verb in text)
    return entities


def suggested_actions_for(category: str) -> List[str]:
    return list(SUGGESTED_ACTIONS.get(category, SUGGESTED_ACTIONS[DEFAULT_CATEGORY]))


def classify_task(title: str, description: str) -> ClassificationResult:
    text = f"{title} {description}".lower()

    category = _first_match(text, CATEGORY_KEYWORDS, DEFAULT_CATEGORY)
    priority = _first_match(text, PRIORITY_KEYWORDS, DEFAULT_PRIORITY)

    return ClassificationResult(
        category=category,
        priority=priority,
        extracted_entities=extract_entities(text),
        suggested_actions=suggested_actions_for(category),
    )


class TaskClassifier:

    def classify(self, title: str = "", description: str = "") -> ClassificationResult:
        return classify_task(title or "", description or "")
