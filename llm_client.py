"""
Centralized Ollama client used by prompt expansion and title suggestions.
Tries every configured endpoint x model and parses JSON out of the reply.
"""

import requests
import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence

OLLAMA_API_URL = "http://localhost:11434/api/generate"
TIMEOUT_SECONDS = 15
KEEP_ALIVE = "30m"
TEMPERATURE = 0.5
TOP_P = 0.9


class GenerationCancelled(Exception):
    """Raised when the caller's cancel token fires between attempts."""


def ollama_generate(
    model: str,
    prompt: str,
    endpoint: str = OLLAMA_API_URL,
    timeout: float = TIMEOUT_SECONDS,
    system: Optional[str] = None,
    format_spec: Optional[Any] = "json",
    keep_alive: Optional[str] = KEEP_ALIVE,
) -> str:
    """
    Generate text from the Ollama /api/generate endpoint.

    Args:
        model: Model name (e.g., "gemma3:4b")
        prompt: User prompt
        endpoint: Full URL of the generate endpoint
        timeout: Request timeout in seconds
        system: Optional system prompt
        format_spec: Optional format specification ("json" or a JSON schema)
        keep_alive: How long Ollama keeps the model loaded

    Returns:
        Generated text response

    Raises:
        requests.exceptions.RequestException: On API errors
    """
    payload = {
        "model": model,
        "prompt": prompt,
        "stream": False,
        "options": {
            "temperature": TEMPERATURE,
            "top_p": TOP_P,
        },
    }
    if system:
        payload["system"] = system
    if format_spec:
        payload["format"] = format_spec
    if keep_alive:
        payload["keep_alive"] = keep_alive

    try:
        response = requests.post(endpoint, json=payload, timeout=timeout)

        if response.status_code != 200:
            logging.warning(f"Ollama API error {response.status_code} from {endpoint}")
            raise requests.exceptions.RequestException(f"Ollama API returned {response.status_code}")

        result = response.json()
        return (result.get("response") or "").strip()

    except requests.exceptions.Timeout:
        logging.error(f"Ollama API timeout for model {model}")
        raise
    except requests.exceptions.RequestException as e:
        logging.error(f"Ollama API error: {type(e).__name__}")
        raise


def extract_json_substring(text: str) -> str:
    """
    Extract JSON substring from text that may contain extra content.
    Finds first '{' and last '}' and extracts everything between.
    """
    first_brace = text.find('{')
    if first_brace == -1:
        raise ValueError("No opening brace found")

    last_brace = text.rfind('}')
    if last_brace == -1 or last_brace <= first_brace:
        raise ValueError("No closing brace found")

    return text[first_brace:last_brace + 1]


def parse_json_response(text: str) -> Dict[str, Any]:
    """
    Parse a model reply that should be a JSON object.

    Accepts a bare object, one wrapped in markdown code fences, or one
    surrounded by chatter.

    Raises:
        ValueError: If no JSON object can be recovered
    """
    text = (text or "").strip()

    if "```json" in text:
        start = text.find("```json") + 7
        end = text.find("```", start)
        if end != -1:
            text = text[start:end].strip()
    elif "```" in text:
        start = text.find("```") + 3
        end = text.find("```", start)
        if end != -1:
            text = text[start:end].strip()

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        try:
            parsed = json.loads(extract_json_substring(text))
        except json.JSONDecodeError as e:
            raise ValueError(f"Could not parse JSON response: {type(e).__name__}")

    if not isinstance(parsed, dict):
        raise ValueError("JSON response is not an object")
    return parsed


def generate_json_with_fallbacks(
    prompt: str,
    endpoints: Sequence[str],
    models: Sequence[str],
    extract: Callable[[Dict[str, Any]], List[Any]],
    timeout: float = TIMEOUT_SECONDS,
    keep_alive: Optional[str] = KEEP_ALIVE,
    cancel: Optional[threading.Event] = None,
    system: Optional[str] = None,
) -> List[Any]:
    """
    Try each endpoint x model until one reply yields usable items.

    Args:
        prompt: User prompt
        endpoints: Generate endpoint URLs, in preference order
        models: Model names, in preference order
        extract: Turns a parsed reply into the list of usable items
        timeout: Per-request timeout in seconds
        keep_alive: Passed through to Ollama
        cancel: Checked before every attempt and before a result is returned
        system: Optional system prompt

    Returns:
        The first non-empty list produced by `extract`

    Raises:
        GenerationCancelled: If `cancel` is set
        ValueError: If no endpoint/model combination produced usable items
    """
    attempts = 0
    for endpoint in endpoints:
        for model in models:
            if cancel is not None and cancel.is_set():
                raise GenerationCancelled("Generation cancelled")
            attempts += 1
            try:
                text = ollama_generate(model, prompt, endpoint=endpoint, timeout=timeout,
                                       system=system, keep_alive=keep_alive)
                items = extract(parse_json_response(text))
            except (requests.exceptions.RequestException, ValueError) as e:
                logging.warning(f"Ollama attempt {attempts} ({model}) failed: {type(e).__name__}")
                continue

            if cancel is not None and cancel.is_set():
                raise GenerationCancelled("Generation cancelled")
            if items:
                logging.info(f"Ollama {model} returned {len(items)} usable items")
                return items
            logging.info(f"Ollama {model} returned no usable items")

    raise ValueError(f"No usable Ollama response after {attempts} attempts")


def check_ollama_available(endpoint: str = OLLAMA_API_URL) -> bool:
    """Check if Ollama is running behind the given generate endpoint."""
    base = endpoint.split("/api/")[0] if "/api/" in endpoint else endpoint
    try:
        response = requests.get(base, timeout=2)
        return response.status_code == 200
    except requests.exceptions.RequestException:
        return False
