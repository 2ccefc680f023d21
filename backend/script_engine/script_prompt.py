"""
Script prompt builder.

Turns a loosely-typed request body into a ScriptRequest and renders the
instruction document sent to the model:
  1. Normalizes every field (bad values get defaults, numbers get clamped)
  2. Picks a style preset ("default" or "educational")
  3. Lays out timed beats covering the whole length
  4. Renders one plain-text prompt, the same bytes for the same input
"""

import math
from dataclasses import dataclass, field

DEFAULT_LENGTH = 30
MIN_LENGTH = 4
MAX_LENGTH = 90

MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 10.0

ARC_ROLES = ("Hook", "Spark", "Proof", "Turn", "Final CTA")
ARC_CUTS = (0.0, 0.10, 0.30, 0.60, 0.85, 1.0)
ARC_GOALS = {
    "Hook": "Stop the scroll with the sharpest, most specific claim about the topic.",
    "Spark": "Turn the hook into the question the viewer now needs answered.",
    "Proof": "Deliver the concrete evidence: a number, a name, a moment.",
    "Turn": "Reframe what the proof means for the viewer personally.",
    "Final CTA": "Land the call to action.",
}

CTA_SENTENCES = (2, 3)
CTA_WORDS = (25, 40)


# ─────────────────────────────────────────────
# STYLE PRESETS
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class StylePreset:
    name: str
    display_tone: str
    tone_directive: str
    style_rules: tuple[str, ...]
    beat_scheme: str  # "arc" | "interval"
    beat_seconds: int
    default_temperature: float  # 0-10 scale, same as the request field
    example: str


DEFAULT_EXAMPLE = """0-3s
Voiceover: Your phone battery is lying to you.
Visuals: Close-up of a phone at 1% as the screen dims in a nervous hand.

3-9s
Voiceover: That percentage is a guess, and the guess gets worse every winter.
Visuals: Slow push-in on the same phone resting on a frosted windowsill."""

EDUCATIONAL_EXAMPLE = """0-6s
Voiceover: A bill becomes law only after both chambers pass the exact same text.
Visuals: Static wide shot of a capitol building at dawn with the flag moving in light wind.

6-12s
Voiceover: When the two versions differ, a conference committee writes one shared draft.
Visuals: Overhead shot of two printed drafts sliding together on a wooden table."""

PRESETS = {
    "default": StylePreset(
        name="default",
        display_tone="straightforward and authentic",
        tone_directive="Sound like one real person talking to one friend: direct, confident, no hype.",
        style_rules=(
            "Rhetorical questions are allowed, at most one per beat.",
            "Puns and wordplay are allowed when they land on the topic.",
            "Metaphors are allowed; keep each one concrete enough to film.",
            "Short sentences. Cut every filler word.",
        ),
        beat_scheme="arc",
        beat_seconds=3,
        default_temperature=8.0,
        example=DEFAULT_EXAMPLE,
    ),
    "educational": StylePreset(
        name="educational",
        display_tone="educational",
        tone_directive="Teach clearly and accurately, like a patient teacher explaining to a curious 12-year-old.",
        style_rules=(
            "Use plain, factual language: no metaphors, similes, puns or other figurative language.",
            "No rhetorical questions; state each point directly.",
            "Define any term a 12-year-old would not know in the same sentence that uses it.",
            "Every claim must be checkable.",
        ),
        beat_scheme="interval",
        beat_seconds=6,
        default_temperature=4.0,
        example=EDUCATIONAL_EXAMPLE,
    ),
}


# ─────────────────────────────────────────────
# NORMALIZATION
# ─────────────────────────────────────────────

def _to_number(value) -> float | None:
    """Best-effort numeric coercion; None when the value has no finite number in it."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clean_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_length(value) -> int:
    number = _to_number(value)
    if number is None:
        number = DEFAULT_LENGTH
    return _round_half_up(min(max(number, MIN_LENGTH), MAX_LENGTH))


def resolve_preset(style: str) -> StylePreset:
    return PRESETS["educational"] if style.lower() == "educational" else PRESETS["default"]


def normalize_facts(value) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(item.strip() for item in value if isinstance(item, str) and item.strip())


def normalize_temperature(value, preset: StylePreset) -> float:
    """Clamp to the 0-10 request scale, then map onto the model's 0.0-1.0 range."""
    number = _to_number(value)
    if number is None:
        number = preset.default_temperature
    number = min(max(number, MIN_TEMPERATURE), MAX_TEMPERATURE)
    return round(number / MAX_TEMPERATURE, 2)


@dataclass(frozen=True)
class ScriptRequest:
    topic: str = ""
    length: int = DEFAULT_LENGTH
    style: str = ""
    cta: str = ""
    search_facts: tuple[str, ...] = field(default_factory=tuple)
    temperature: float = PRESETS["default"].default_temperature / MAX_TEMPERATURE

    @classmethod
    def from_payload(cls, payload) -> "ScriptRequest":
        """Build a request from a JSON body. Never raises on bad field values."""
        if not isinstance(payload, dict):
            payload = {}

        topic = payload.get("topic")
        style = _clean_text(payload.get("style"))
        preset = resolve_preset(style)

        return cls(
            topic="" if topic is None else str(topic),
            length=normalize_length(payload.get("length")),
            style=style,
            cta=_clean_text(payload.get("cta")),
            search_facts=normalize_facts(payload.get("searchFacts")),
            temperature=normalize_temperature(payload.get("temperature"), preset),
        )

    @property
    def preset(self) -> StylePreset:
        return resolve_preset(self.style)

    @property
    def tone(self) -> str:
        if not self.style or self.preset.name == "educational":
            return self.preset.display_tone
        return self.style

    @property
    def tone_directive(self) -> str:
        if not self.style or self.preset.name == "educational":
            return self.preset.tone_directive
        return f"Commit to a {self.style} tone in every line of voiceover."


# ─────────────────────────────────────────────
# BEATS
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class Beat:
    index: int
    start: int
    end: int
    role: str | None = None

    @property
    def duration(self) -> int:
        return self.end - self.start

    @property
    def label(self) -> str:
        return f"{self.start}-{self.end}s"


def _arc_beats(length: int) -> list[Beat]:
    cuts = [_round_half_up(length * c) for c in ARC_CUTS]
    cuts[0], cuts[-1] = 0, length
    last = len(cuts) - 1
    # every beat gets at least one second
    for i in range(1, last):
        cuts[i] = max(cuts[i], cuts[i - 1] + 1)
    for i in range(last - 1, 0, -1):
        cuts[i] = min(cuts[i], cuts[i + 1] - 1)
    return [
        Beat(index=i, start=cuts[i], end=cuts[i + 1], role=role)
        for i, role in enumerate(ARC_ROLES)
    ]


def _interval_beats(length: int, beat_seconds: int) -> list[Beat]:
    beats = []
    for i, start in enumerate(range(0, length, beat_seconds)):
        beats.append(Beat(index=i, start=start, end=min(start + beat_seconds, length)))
    if len(beats) > 1:
        beats[0] = Beat(index=0, start=beats[0].start, end=beats[0].end, role="Hook")
    last = beats[-1]
    beats[-1] = Beat(index=last.index, start=last.start, end=last.end, role="Final CTA")
    return beats


def plan_beats(length: int, preset: StylePreset) -> list[Beat]:
    """
    Split [0, length) into consecutive beats with no gaps or overlaps.
    The arc scheme falls back to fixed intervals when the video is too short
    to give each of its five beats a full second.
    """
    if preset.beat_scheme == "arc" and length >= len(ARC_ROLES):
        return _arc_beats(length)
    return _interval_beats(length, preset.beat_seconds)


def voiceover_bounds(beat: Beat) -> tuple[tuple[int, int], tuple[int, int]]:
    """(sentences, words) bounds for a non-final beat, paced at roughly 2-3 words per second."""
    min_words = max(3, int(beat.duration * 2))
    max_words = max(min_words + 2, int(math.ceil(beat.duration * 3)))
    sentences = (1, 1) if beat.duration < 5 else (1, 2)
    return sentences, (min_words, max_words)


# ─────────────────────────────────────────────
# RENDERING
# ─────────────────────────────────────────────

def _span(bounds: tuple[int, int], unit: str) -> str:
    low, high = bounds
    if low == high:
        return _count(low, unit)
    return f"{low}-{high} {unit}s"


def _count(n: int, noun: str) -> str:
    return f"{n} {noun}" if n == 1 else f"{n} {noun}s"


def fact_directive(facts: tuple[str, ...]) -> str:
    if not facts:
        return "No facts were supplied. Ground each beat in plausible specific detail without inventing statistics."
    lines = [
        "Use every fact below. Surface each one with its exact numbers and names preserved; "
        "do not paraphrase them away, and do not invent any additional data, statistics or names."
    ]
    lines.extend(f"- {fact}" for fact in facts)
    return "\n".join(lines)


def cta_directive(cta: str) -> str:
    if cta:
        return (
            f'Close with this call to action, kept word for word: "{cta}". '
            "The final beat must reproduce it exactly."
        )
    return (
        "No call to action was supplied. Invent one concrete, time-bound action the viewer can take "
        "(name the action and when to do it). Do not use vague boilerplate such as "
        '"like and subscribe", "follow for more" or "let me know in the comments".'
    )


def _beat_instructions(beat: Beat, is_last: bool, request: ScriptRequest) -> str:
    name = beat.role or f"Beat {beat.index + 1}"
    lines = [f"{beat.index + 1}. {beat.label} ({name})"]

    if beat.role in ARC_GOALS and not is_last:
        lines.append(f"   Goal: {ARC_GOALS[beat.role]}")

    if is_last:
        words = _span(CTA_WORDS, "word")
        sentences = _span(CTA_SENTENCES, "sentence")
        if request.cta:
            cta_line = (
                f"Paraphrase every specific of the call to action into {sentences} totalling {words}, "
                f'then say it verbatim: "{request.cta}".'
            )
        else:
            cta_line = (
                f"Deliver your invented call to action in {sentences} totalling {words}, "
                "with the action and the deadline both stated."
            )
        lines.append(f"   Voiceover: {cta_line}")
    else:
        sentences, words = voiceover_bounds(beat)
        lines.append(f"   Voiceover: {_span(sentences, 'sentence')}, {_span(words, 'word')}.")

    lines.append("   Visuals: one continuous shot, described in a single line.")
    if beat.index > 0:
        lines.append("   Continuity: explicitly reference or escalate what the previous beat just said.")
    return "\n".join(lines)


def render_prompt(request: ScriptRequest) -> str:
    """Render the full instruction document. Pure: same request, same string."""
    preset = request.preset
    beats = plan_beats(request.length, preset)

    sections = [
        (
            f'Write a {request.length}-second short-form video script about "{request.topic}" '
            f"in a {request.tone} tone. {request.tone_directive}"
        ),
        (
            f"Split it into exactly {_count(len(beats), 'timed beat')} "
            f"that {'covers' if len(beats) == 1 else 'cover'} 0-{request.length}s "
            "in this order, with no gaps and no overlaps:\n"
            + "\n".join(_beat_instructions(b, b is beats[-1], request) for b in beats)
        ),
        (
            "Format every beat exactly like this:\n"
            "<start>-<end>s\n"
            "Voiceover: <the spoken line>\n"
            "Visuals: <one continuous shot>"
        ),
        "Style rules:\n" + "\n".join(f"- {rule}" for rule in preset.style_rules),
        "Facts:\n" + fact_directive(request.search_facts),
        "Call to action:\n" + cta_directive(request.cta),
        "Example of the format only (do not reuse its topic or wording):\n" + preset.example,
        (
            "Respond with only the formatted beats in plain text. "
            "No title, no preamble, no notes, no markdown."
        ),
    ]
    return "\n\n".join(sections)
