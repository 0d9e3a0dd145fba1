"""Gemini call wrapper and parsing of the JSON the model returns."""

import json
import re

from google.genai import types

MAX_SOURCE_TEXT_LEN = 120000
MAX_REFINEMENT_LEN = 1000
MAX_TEXT_LEN = 2000
MAX_QUIZ_QUESTIONS = 10
OPTIONS_PER_QUESTION = 4

JSON_FENCE_RE = re.compile(r'```(?:json)?\s*\n([\s\S]*?)\n\s*```', re.IGNORECASE)
CONTROL_CHARS_RE = re.compile(r'[\x00-\x1F\x7F-\x9F]')


def generate_text(client, model, prompt_text, *, temperature=None, max_output_tokens=8192):
    config_kwargs = {'max_output_tokens': max_output_tokens}
    if temperature is not None:
        config_kwargs['temperature'] = temperature
    response = client.models.generate_content(
        model=model,
        contents=[types.Content(role='user', parts=[types.Part.from_text(text=prompt_text)])],
        config=types.GenerateContentConfig(**config_kwargs),
    )
    return (getattr(response, 'text', '') or '').strip()


def _json_candidates(text):
    fenced = JSON_FENCE_RE.search(text)
    if fenced:
        yield fenced.group(1).strip()
    first_bracket, last_bracket = text.find('['), text.rfind(']')
    first_brace, last_brace = text.find('{'), text.rfind('}')
    spans = []
    if first_bracket != -1 and last_bracket > first_bracket:
        spans.append((first_bracket, last_bracket))
    if first_brace != -1 and last_brace > first_brace:
        spans.append((first_brace, last_brace))
    # The span that opens first is the outermost value.
    for start, end in sorted(spans):
        yield text[start:end + 1]


def extract_json_payload(raw_text):
    """Pull the first JSON value out of a model reply.

    Tries the ```json fenced block first, then the widest bracket or brace
    span. Each candidate is retried once with control characters stripped,
    since models sometimes emit raw newlines inside string values.
    """
    if not raw_text:
        return None
    text = str(raw_text).strip()
    for candidate in _json_candidates(text):
        for attempt in (candidate, CONTROL_CHARS_RE.sub('', candidate)):
            try:
                return json.loads(attempt)
            except json.JSONDecodeError:
                continue
    return None


def _clean_text(value):
    if value is None:
        return ''
    return str(value).strip()[:MAX_TEXT_LEN]


def sanitize_questions(items, max_items=MAX_QUIZ_QUESTIONS):
    if not isinstance(items, list):
        return []
    cleaned = []
    seen = set()
    for item in items:
        if not isinstance(item, dict):
            continue
        question = _clean_text(item.get('question'))
        options = item.get('options', [])
        answer = _clean_text(item.get('correctAnswer', item.get('answer')))
        if not question or not isinstance(options, list) or len(options) != OPTIONS_PER_QUESTION or not answer:
            continue
        option_strings = [_clean_text(option) for option in options]
        if any(not option for option in option_strings):
            continue
        if len(set(option_strings)) != OPTIONS_PER_QUESTION:
            continue
        if answer not in option_strings:
            continue
        dedupe_key = question.lower()
        if dedupe_key in seen:
            continue
        seen.add(dedupe_key)
        cleaned.append({
            'question': question,
            'options': option_strings,
            'correctAnswer': answer,
        })
        if len(cleaned) >= max_items:
            break
    return cleaned


def normalize_quiz_payload(parsed, max_items=MAX_QUIZ_QUESTIONS):
    if isinstance(parsed, list):
        return sanitize_questions(parsed, max_items)
    if isinstance(parsed, dict):
        if isinstance(parsed.get('questions'), list):
            return sanitize_questions(parsed['questions'], max_items)
        return sanitize_questions([parsed], max_items)
    return []


def sanitize_flashcards(items, max_items):
    if isinstance(items, dict):
        items = items.get('flashcards', [])
    if not isinstance(items, list):
        return []
    cleaned = []
    seen = set()
    for item in items:
        if not isinstance(item, dict):
            continue
        front = _clean_text(item.get('front'))
        back = _clean_text(item.get('back'))
        if not front or not back:
            continue
        key = (front.lower(), back.lower())
        if key in seen:
            continue
        seen.add(key)
        cleaned.append({'front': front, 'back': back})
        if len(cleaned) >= max_items:
            break
    return cleaned


def sanitize_key_concepts(parsed, page_count=None):
    """Keep only `{"<page>": [sentence, ...]}` entries with real page numbers."""
    if not isinstance(parsed, dict):
        return {}
    cleaned = {}
    for raw_page, sentences in parsed.items():
        try:
            page = int(str(raw_page).strip())
        except ValueError:
            continue
        if page < 1 or (page_count is not None and page > page_count):
            continue
        if isinstance(sentences, str):
            sentences = [sentences]
        if not isinstance(sentences, list):
            continue
        kept = [_clean_text(sentence) for sentence in sentences if _clean_text(sentence)]
        if kept:
            cleaned.setdefault(str(page), []).extend(kept)
    return cleaned
