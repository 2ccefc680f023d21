"""
Short-Form Script Engine — Backend
Flask API that:
  1. Accepts a topic, length, style, optional CTA and optional facts
  2. Normalizes the request and renders a timed-beat script prompt
  3. Builds the system prompt by reading the .md files from /prompts/
  4. Sends everything to Claude and returns the generated script text
  5. Hands the stored client API key to authorized callers (/api-key)
"""

from pathlib import Path

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS

from .config import Settings
from .credentials import CredentialError, get_shared_api_key
from .generation import GENERATION_FAILED, GenerationError, ScriptGenerator, redact
from .script_prompt import ScriptRequest, plan_beats, render_prompt

PROMPTS_DIR = Path(__file__).parent / "prompts"
FALLBACK_SYSTEM_PROMPT = "You are a short-form video script writer. Return only the timed beats, in plain text."

routes = Blueprint("scripts", __name__)


# ─────────────────────────────────────────────
# LOAD SYSTEM PROMPT FROM THE MARKDOWN FILES
# ─────────────────────────────────────────────

def load_system_prompt(prompts_dir: Path = PROMPTS_DIR) -> str:
    """
    Reads all .md files from the /prompts directory and combines them
    into a single system prompt that gets sent to Claude on every request.

    To update the house style: edit the .md files in /prompts/ and redeploy.
    """
    if not prompts_dir.exists():
        raise RuntimeError(f"No /prompts directory found at {prompts_dir}.")

    md_files = sorted(prompts_dir.glob("*.md"))
    if not md_files:
        raise RuntimeError("No .md files found in /prompts/.")

    parts = []
    for f in md_files:
        content = f.read_text(encoding="utf-8").strip()
        parts.append(f"# {f.stem}\n\n{content}")
        print(f"  ✓ Loaded prompt file: {f.name} ({len(content):,} chars)")

    combined = "\n\n---\n\n".join(parts)
    print(f"✅ System prompt built from {len(md_files)} file(s) — {len(combined):,} total chars")
    return combined


def _prompt_files(prompts_dir: Path) -> list[str]:
    return [f.name for f in sorted(prompts_dir.glob("*.md"))] if prompts_dir.exists() else []


# ─────────────────────────────────────────────
# ROUTES
# ─────────────────────────────────────────────

@routes.route('/health', methods=['GET'])
def health():
    """Shows which prompt files are loaded — useful for debugging."""
    settings = current_app.config['SETTINGS']
    return jsonify({
        'status': 'ok',
        'model': settings.model,
        'prompt_files_loaded': _prompt_files(current_app.config['PROMPTS_DIR']),
        'system_prompt_chars': len(current_app.config['SYSTEM_PROMPT']),
    })


@routes.route('/generate-script', methods=['POST'])
def generate_script():
    settings = current_app.config['SETTINGS']
    generator = current_app.extensions['script_generator']

    script_request = ScriptRequest.from_payload(request.get_json(silent=True))
    prompt = render_prompt(script_request)
    current_app.logger.info(
        "Generating script: preset=%s length=%ss beats=%d temperature=%.2f facts=%d",
        script_request.preset.name,
        script_request.length,
        len(plan_beats(script_request.length, script_request.preset)),
        script_request.temperature,
        len(script_request.search_facts),
    )

    try:
        text = generator.generate(
            prompt,
            system=current_app.config['SYSTEM_PROMPT'],
            max_tokens=settings.max_tokens,
            temperature=script_request.temperature,
        )
    except GenerationError as e:
        current_app.logger.error("Script generation failed: %s", e)
        return jsonify(e.to_dict()), 500
    except Exception as e:
        details = redact(str(e), settings.anthropic_api_key)
        current_app.logger.error("Unexpected generation failure: %s: %s", type(e).__name__, details)
        return jsonify(GenerationError(GENERATION_FAILED, details).to_dict()), 500

    return jsonify({'text': text})


@routes.route('/api-key', methods=['POST'])
def api_key():
    try:
        key = get_shared_api_key(current_app.config['SETTINGS'], request.headers.get('Authorization'))
    except CredentialError as e:
        current_app.logger.warning("API key request refused: %s", e.code)
        return jsonify(e.to_dict()), e.status
    return jsonify({'apiKey': key})


def method_not_allowed(error):
    response = jsonify({'error': 'Method not allowed'})
    response.status_code = 405
    if error.valid_methods:
        response.headers['Allow'] = ', '.join(error.valid_methods)
    return response


# ─────────────────────────────────────────────
# APP FACTORY
# ─────────────────────────────────────────────

def create_app(settings: Settings | None = None, generator=None, prompts_dir: Path = PROMPTS_DIR) -> Flask:
    """
    Builds the Flask app. Pass `generator` to swap the Claude client for
    anything with the same generate(prompt, *, system, max_tokens, temperature)
    signature (tests use a stub).
    """
    settings = settings or Settings.from_env()

    app = Flask(__name__)
    CORS(app)

    try:
        system_prompt = load_system_prompt(prompts_dir)
    except RuntimeError as e:
        print(f"⚠️  WARNING: {e}")
        system_prompt = FALLBACK_SYSTEM_PROMPT

    app.config['SETTINGS'] = settings
    app.config['PROMPTS_DIR'] = prompts_dir
    app.config['SYSTEM_PROMPT'] = system_prompt
    app.extensions['script_generator'] = generator or ScriptGenerator(settings.anthropic_api_key, settings.model)

    app.register_blueprint(routes)
    app.register_error_handler(405, method_not_allowed)
    return app


if __name__ == '__main__':
    app = create_app()
    port = app.config['SETTINGS'].port
    print(f"✅  Script Engine API running → http://localhost:{port}\n")
    app.run(host='0.0.0.0', port=port, debug=False)
