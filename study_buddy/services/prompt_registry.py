"""Prompt templates and inventory helpers for Study Buddy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List


PROMPT_REGISTRY_VERSION = "2026-10-12"

PAGE_BREAK_MARKER = "--- Page Break ---"


PROMPT_MULTIPLE_CHOICE_QUIZ = """Based on the following text, generate a multiple-choice quiz with 5 to 8 questions.
Each question must have exactly 4 answer options, with only one being correct.
The questions should test the key information from the text.
{refinement_instruction}
Format the output as a single JSON object inside a ```json code block.
The JSON object should have a single key "questions", which is an array.
Each object in the "questions" array should have:
- a "question" key with the question text (string).
- an "options" key with an array of 4 answer strings.
- a "correctAnswer" key with the string of the correct answer, which must exactly match one of the strings in the "options" array.
Here is the text to analyze:
---
{source_text}
---"""

PROMPT_FLASHCARDS = """Based on the following text, create {card_amount} study flashcards.
Rules:
- The "front" is a clear term, concept or short question.
- The "back" is a concise, accurate definition or answer taken from the text.
- Do not invent information that is not in the text.
{refinement_instruction}
Format the output as a single JSON object inside a ```json code block.
The JSON object should have a single key "flashcards", which is an array of objects with "front" and "back" string keys.
Here is the text to analyze:
---
{source_text}
---"""

PROMPT_KEY_CONCEPTS = """Read the following text, which is separated by "{page_break}".
Identify the 5-10 most important key concepts in the entire document.
For each concept, return the full, exact sentence in which it is explained.
Format the output as a single JSON object inside a ```json code block.
The JSON object should map the page number (as a string, starting from "1") to an array of the key sentences found on that page.
Use the "{page_break}" separators to determine the page number for each sentence.
Example: {{ "1": ["Sentence one...", "Sentence two..."], "2": ["Sentence three..."] }}
Here is the text to analyze:
---
{source_text}
---"""

REFINEMENT_INSTRUCTION = 'IMPORTANT: Follow these specific instructions: "{refinement_text}".'


@dataclass(frozen=True)
class PromptRecord:
    prompt_id: str
    name: str
    template: str


PROMPT_RECORDS: List[PromptRecord] = [
    PromptRecord("multiple_choice_quiz", "Multiple-choice quiz", PROMPT_MULTIPLE_CHOICE_QUIZ),
    PromptRecord("flashcards", "Flashcards", PROMPT_FLASHCARDS),
    PromptRecord("key_concepts", "Document key concepts", PROMPT_KEY_CONCEPTS),
]


def build_refinement_instruction(refinement_text: str) -> str:
    cleaned = str(refinement_text or "").strip().replace('"', "'")
    if not cleaned:
        return ""
    return REFINEMENT_INSTRUCTION.format(refinement_text=cleaned)


def build_quiz_prompt(source_text: str, refinement_text: str = "") -> str:
    return PROMPT_MULTIPLE_CHOICE_QUIZ.format(
        refinement_instruction=build_refinement_instruction(refinement_text),
        source_text=source_text,
    )


def build_flashcards_prompt(source_text: str, card_amount: int, refinement_text: str = "") -> str:
    return PROMPT_FLASHCARDS.format(
        card_amount=card_amount,
        refinement_instruction=build_refinement_instruction(refinement_text),
        source_text=source_text,
    )


def build_key_concepts_prompt(pages: List[str]) -> str:
    separator = f"\n\n{PAGE_BREAK_MARKER}\n\n"
    joined = separator.join(str(page or "").strip() for page in pages)
    return PROMPT_KEY_CONCEPTS.format(page_break=PAGE_BREAK_MARKER, source_text=joined)


def get_prompt_metadata() -> Dict[str, object]:
    return {
        "version": PROMPT_REGISTRY_VERSION,
        "count": len(PROMPT_RECORDS),
        "ids": [record.prompt_id for record in PROMPT_RECORDS],
    }
