# === app.py ===
# HTTP surface for the reflective prompt engine: context snapshots,
# prompt selection with novelty tracking, optional Ollama expansion,
# and entry title suggestions. Per-user state is keyed by the X-User-Id header.

from flask import Flask, request, jsonify
import logging
import threading
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from config import load_config
from llm_client import check_ollama_available
from prompt_engine.session import SessionRegistry, UserSession
from prompt_engine.titles import generate_title_suggestions_local, generate_title_suggestions_with_ollama
from schemas.journal import coerce_entries

app = Flask(__name__)

# === CONFIG ===
cfg = load_config()

logging.basicConfig(level=logging.INFO)

sessions = SessionRegistry(cfg)


@app.after_request
def add_header(response):
    response.headers['Cache-Control'] = 'no-store'
    return response


def current_session() -> UserSession:
    return sessions.get(request.headers.get(cfg.user_id_header, "").strip() or "anonymous")


def read_payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def text_field(data: dict, name: str) -> str:
    """Payload field as text; missing or null becomes "", other JSON values are stringified."""
    value = data.get(name)
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def too_long(text: str) -> bool:
    return len(text or "") > cfg.max_content_length


def too_long_response():
    return jsonify({"error": f"📏 Entry too long. Limit to {cfg.max_content_length} characters."}), 400


def unexpected_error_response():
    return jsonify({"error": "⚠️ Something unexpected happened. Please try again."}), 500


def read_entries(data: dict):
    raw = data.get("entries")
    entries = coerce_entries(raw if isinstance(raw, list) else [])
    if any(too_long(e.content) for e in entries):
        return None
    return entries


@app.route("/ping")
def ping():
    return jsonify({"status": "ok"})


@app.route("/context", methods=["POST"])
def context():
    data = read_payload()
    entries = read_entries(data)
    if entries is None:
        return too_long_response()
    try:
        snapshot = current_session().context(entries)
        return jsonify(snapshot.model_dump())
    except Exception:
        logging.exception("Context snapshot failed")
        return unexpected_error_response()


@app.route("/prompt", methods=["POST"])
def suggest_prompt():
    data = read_payload()
    entries = read_entries(data)
    if entries is None:
        return too_long_response()
    try:
        pick = current_session().next_prompt(entries, current=text_field(data, "current"), exclude=data.get("exclude"))
        return jsonify({
            "prompt": pick.prompt,
            "status": pick.status,
            "refill_requested": pick.refill_requested,
            "source": pick.source,
        })
    except Exception:
        logging.exception("Prompt selection failed")
        return unexpected_error_response()


@app.route("/prompts/candidates", methods=["POST"])
def prompt_candidates():
    data = read_payload()
    entries = read_entries(data)
    if entries is None:
        return too_long_response()
    try:
        return jsonify({"prompts": current_session().candidates(entries)})
    except Exception:
        logging.exception("Prompt candidates failed")
        return unexpected_error_response()


@app.route("/prompts/expand", methods=["POST"])
def expand_prompts():
    data = read_payload()
    entries = read_entries(data)
    if entries is None:
        return too_long_response()
    try:
        prompts = current_session().expanded_prompts(
            entries, cancel=threading.Event(), wait_seconds=cfg.expansion_wait_seconds
        )
        return jsonify({"prompts": prompts})
    except Exception:
        logging.exception("Prompt expansion failed")
        return unexpected_error_response()


@app.route("/prompt/shown", methods=["POST"])
def prompt_shown():
    data = read_payload()
    prompt = text_field(data, "prompt").strip()
    if not prompt:
        return jsonify({"error": "✋ A prompt is required."}), 400
    try:
        stats = current_session().mark_shown(prompt)
        return jsonify({"status": "ok", "stats": stats.model_dump() if stats else None})
    except Exception:
        logging.exception("Recording shown prompt failed")
        return unexpected_error_response()


@app.route("/prompt/completed", methods=["POST"])
def prompt_completed():
    data = read_payload()
    prompt = text_field(data, "prompt").strip()
    content = text_field(data, "content")
    if not prompt:
        return jsonify({"error": "✋ A prompt is required."}), 400
    if too_long(content):
        return too_long_response()
    try:
        stats = current_session().mark_completed(prompt, content)
        return jsonify({"status": "ok", "stats": stats.model_dump() if stats else None})
    except Exception:
        logging.exception("Recording completed prompt failed")
        return unexpected_error_response()


@app.route("/titles", methods=["POST"])
def suggest_titles():
    data = read_payload()
    content = text_field(data, "content")
    if too_long(content):
        return too_long_response()
    try:
        titles = generate_title_suggestions_local(content, text_field(data, "current_title"))
        return jsonify({"titles": titles})
    except Exception:
        logging.exception("Title suggestion failed")
        return unexpected_error_response()


@app.route("/titles/expand", methods=["POST"])
def expand_titles():
    data = read_payload()
    content = text_field(data, "content")
    if too_long(content):
        return too_long_response()
    try:
        titles = generate_title_suggestions_with_ollama(
            content, text_field(data, "current_title"), cancel=threading.Event(), cfg=cfg
        )
        return jsonify({"titles": titles})
    except Exception:
        logging.exception("Title expansion failed")
        return unexpected_error_response()


@app.route("/models", methods=["GET"])
def get_available_models():
    """Return the effective Ollama configuration."""
    return jsonify({
        "models": cfg.ollama_models,
        "endpoints": cfg.ollama_endpoints,
        "keep_alive": cfg.ollama_keep_alive,
        "timeout_seconds": cfg.ollama_timeout_seconds,
        "expansion_enabled": cfg.expansion_enabled,
        "ollama_available": bool(cfg.ollama_endpoints) and check_ollama_available(cfg.ollama_endpoints[0]),
    })


if __name__ == "__main__":
    app.run(debug=True)
