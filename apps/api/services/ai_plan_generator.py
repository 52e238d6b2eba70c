"""
AI Plan Generator

The external planner behind plan generation, recalculation and the
runner-facing adjustment summary.

Two implementations share one interface:
    - GeminiPlanGenerator: Gemini Flash, JSON response mode for sessions,
      plain text for the summary. Responses are validated with pydantic;
      a response that does not parse is a PlanGenerationError.
    - FallbackPlanGenerator: deterministic weekly templates, used when no
      GOOGLE_API_KEY is configured (local dev, CI).

Callers treat every failure as an exception. The planner never writes to
the database; callers decide what to persist.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Protocol

from google import genai
from google.genai import types as genai_types
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from core.config import settings
from core.exceptions import PlanGenerationError
from models import CyclePhase, IntensityLevel, WorkoutType

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

PLANNER_TEMPERATURE = 0.4
PLANNER_MAX_TOKENS = 8192
SUMMARY_TEMPERATURE = 0.7
SUMMARY_MAX_TOKENS = 300

DISTANCE_LABELS = {
    "5k": "5K",
    "10k": "10K",
    "half_marathon": "Half Marathon",
    "marathon": "Marathon",
}


def distance_label(distance_type: Optional[str], distance: float) -> str:
    return DISTANCE_LABELS.get((distance_type or "").lower(), f"{distance:.1f} km")


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

@dataclass
class HistoricalSession:
    """Read-only summary of a completed or skipped session."""
    scheduled_date: date
    workout_type: str
    planned_distance: Optional[float] = None
    planned_duration: Optional[int] = None
    actual_distance: Optional[float] = None
    actual_duration: Optional[int] = None
    is_skipped: bool = False
    skip_reason: Optional[str] = None
    was_modified: bool = False
    rpe: Optional[int] = None
    user_notes: Optional[str] = None


@dataclass
class RecalculationRequest:
    plan_name: str
    race_name: str
    race_date: date
    distance: float
    distance_type: Optional[str]
    fitness_level: str
    window_start: date
    window_end: date
    sessions_to_recalculate: int
    today: date
    goal_time: Optional[str] = None
    typical_weekly_mileage: Optional[float] = None
    cycle_length: Optional[int] = None
    recent_sessions: List[HistoricalSession] = field(default_factory=list)
    phase_map: Dict[date, CyclePhase] = field(default_factory=dict)

    @property
    def skipped_count(self) -> int:
        return sum(1 for s in self.recent_sessions if s.is_skipped)

    @property
    def modified_count(self) -> int:
        return sum(1 for s in self.recent_sessions if s.was_modified and not s.is_skipped)

    @property
    def average_rpe(self) -> Optional[float]:
        rpes = [s.rpe for s in self.recent_sessions if s.rpe is not None and not s.is_skipped]
        if not rpes:
            return None
        return sum(rpes) / len(rpes)


@dataclass
class PlanGenerationRequest:
    race_name: str
    race_date: date
    distance: float
    distance_type: Optional[str]
    fitness_level: str
    start_date: date
    end_date: date
    goal_time: Optional[str] = None
    typical_weekly_mileage: Optional[float] = None
    cycle_length: Optional[int] = None
    last_period_start: Optional[date] = None
    typical_cycle_regularity: Optional[str] = None
    phase_map: Dict[date, CyclePhase] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class GeneratedSession(BaseModel):
    session_name: str
    scheduled_date: date
    workout_type: WorkoutType
    intensity_level: IntensityLevel = IntensityLevel.LOW
    warm_up: Optional[str] = None
    description: Optional[str] = None
    duration_minutes: Optional[int] = None
    distance: Optional[float] = None
    hr_zones: Optional[str] = None
    cycle_phase: Optional[CyclePhase] = None
    phase_guidance: Optional[str] = None

    @field_validator("workout_type", "intensity_level", "cycle_phase", mode="before")
    @classmethod
    def _lowercase_enum(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def _round_duration(cls, value):
        if isinstance(value, float):
            return int(round(value))
        return value


class GeneratedPlan(BaseModel):
    plan_name: Optional[str] = None
    sessions: List[GeneratedSession] = Field(default_factory=list)
    generation_source: str = "ai"

    def session_for(self, on: date) -> Optional[GeneratedSession]:
        """First generated session scheduled on a calendar date."""
        for session in self.sessions:
            if session.scheduled_date == on:
                return session
        return None


class AIPlanGenerator(Protocol):
    def generate(self, request: PlanGenerationRequest) -> GeneratedPlan:
        ...

    def recalculate(self, request: RecalculationRequest) -> GeneratedPlan:
        ...

    def summarize(self, request: RecalculationRequest) -> str:
        ...


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """You are an experienced running coach who builds cycle-aware training plans for women runners.

RULES:
- Respond with JSON only when asked for sessions. No markdown fences, no commentary.
- workout_type is one of: easy, long, tempo, interval, rest
- intensity_level is one of: low, moderate, high
- cycle_phase is one of: menstrual, follicular, ovulatory, luteal (or null without cycle data)
- Dates are ISO format (YYYY-MM-DD). distance is in km, duration_minutes in minutes.
- Rest days have null distance and null duration_minutes."""

SESSION_JSON_SHAPE = """{
  "plan_name": "...",
  "sessions": [
    {
      "session_name": "Easy Run",
      "scheduled_date": "YYYY-MM-DD",
      "workout_type": "easy",
      "warm_up": "10 min easy jog",
      "description": "Relaxed pace, focus on form",
      "duration_minutes": 30,
      "distance": 5.0,
      "intensity_level": "low",
      "hr_zones": "Zone 2",
      "cycle_phase": "follicular",
      "phase_guidance": "Rising energy, good day for base building"
    }
  ]
}"""

CYCLE_GUIDELINES = """Cycle-aware guidelines:
- Menstrual: low energy, prioritize easy runs and rest
- Follicular: rising energy, good window for intervals and tempo
- Ovulatory: peak performance, quality hard workouts
- Luteal: declining energy, more easy running and recovery"""


def _format_phase_map(phase_map: Dict[date, CyclePhase]) -> str:
    if not phase_map:
        return "Cycle tracking not enabled"
    return "\n".join(
        f"- {d.isoformat()}: {CyclePhase(p).value}" for d, p in sorted(phase_map.items())
    )


def _format_history(sessions: List[HistoricalSession]) -> str:
    if not sessions:
        return "No recent sessions available"
    lines = []
    for s in sorted(sessions, key=lambda x: x.scheduled_date):
        if s.is_skipped:
            lines.append(f"- {s.scheduled_date.isoformat()} ({s.workout_type}): SKIPPED")
            lines.append(f"  Reason: {s.skip_reason or 'Not specified'}")
            continue
        status = "MODIFIED" if s.was_modified else "Completed as planned"
        lines.append(f"- {s.scheduled_date.isoformat()} ({s.workout_type}): {status}")
        lines.append(
            f"  Planned: {_fmt_km(s.planned_distance)} km, {s.planned_duration or 0} min"
        )
        lines.append(
            f"  Actual: {_fmt_km(s.actual_distance)} km, {s.actual_duration or 0} min"
        )
        if s.rpe is not None:
            lines.append(f"  RPE: {s.rpe}/10")
        if s.user_notes:
            lines.append(f"  Notes: {s.user_notes}")
    return "\n".join(lines)


def _fmt_km(value: Optional[float]) -> str:
    return f"{value:.1f}" if value is not None else "N/A"


def performance_pattern(request: RecalculationRequest) -> str:
    """on-track / inconsistent / underperforming / overperforming."""
    if request.modified_count > 0:
        measured = [
            s for s in request.recent_sessions
            if not s.is_skipped and s.actual_distance is not None and s.planned_distance is not None
        ]
        if measured:
            actual = sum(s.actual_distance for s in measured) / len(measured)
            planned = sum(s.planned_distance for s in measured) / len(measured)
            return "overperforming" if actual > planned else "underperforming"
    if request.skipped_count > 0:
        return "inconsistent"
    return "on-track"


def build_generation_prompt(request: PlanGenerationRequest) -> str:
    total_days = (request.end_date - request.start_date).days + 1
    label = distance_label(request.distance_type, request.distance)

    if request.phase_map:
        counts: Dict[str, int] = {}
        for phase in request.phase_map.values():
            key = CyclePhase(phase).value
            counts[key] = counts.get(key, 0) + 1
        cycle_info = (
            "Predicted cycle phases:\n"
            + _format_phase_map(request.phase_map)
            + f"\n\n{CYCLE_GUIDELINES}\n"
            + f"Cycle regularity: {request.typical_cycle_regularity or 'unknown'}"
            + f"\nPhase distribution: {', '.join(f'{k}: {v} days' for k, v in counts.items())}"
        )
    else:
        cycle_info = "Cycle tracking not enabled for this runner; set cycle_phase to null."

    return f"""Create training sessions for a woman runner preparing for a race.

Runner:
- Fitness level: {request.fitness_level}
- Typical weekly mileage: {request.typical_weekly_mileage or 0:.1f} km
- Cycle length: {request.cycle_length or 28} days

Race:
- {request.race_name} on {request.race_date.isoformat()}
- Distance: {label} ({request.distance:.1f} km)
- Goal time: {request.goal_time or 'Not specified - focus on completion'}

Sessions required for every date from {request.start_date.isoformat()} to {request.end_date.isoformat()} ({total_days} days).
Include rest days, keep weekly mileage increases at or below 10%, and taper the final 2 weeks before the race.

{cycle_info}

Return ONLY this JSON:
{SESSION_JSON_SHAPE}"""


def build_recalculation_prompt(request: RecalculationRequest) -> str:
    total = len(request.recent_sessions)
    avg_rpe = request.average_rpe
    label = distance_label(request.distance_type, request.distance)
    days_until_race = (request.race_date - request.window_start).days

    return f"""Recalculate upcoming training sessions. The runner is not following the current plan as expected.

Context:
- Race: {request.race_name} on {request.race_date.isoformat()} ({label}, {days_until_race} days away)
- Runner fitness: {request.fitness_level}
- Current plan: {request.plan_name}

Recent sessions (last {total}):
{_format_history(request.recent_sessions)}

Summary:
- Skipped: {request.skipped_count}/{total}
- Modified (>20% deviation): {request.modified_count}/{total}
- Average RPE: {f'{avg_rpe:.1f}/10' if avg_rpe is not None else 'N/A'}

Adapt the next {request.sessions_to_recalculate} sessions ({request.window_start.isoformat()} to {request.window_end.isoformat()}):
1. Many skipped sessions: reduce volume and frequency to rebuild consistency
2. Shorter or slower than planned: scale back, the plan is too aggressive
3. RPE consistently above 7: add recovery, reduce intensity
4. RPE consistently below 5 and completing as planned: consider a slight increase
5. Keep progressing toward the race
6. Align with the cycle phases below

Cycle phases for the window:
{_format_phase_map(request.phase_map)}

Use the scheduled dates of the sessions being replaced. Return ONLY this JSON:
{SESSION_JSON_SHAPE}"""


def build_summary_prompt(request: RecalculationRequest) -> str:
    total = len(request.recent_sessions)
    completed = total - request.skipped_count - request.modified_count
    avg_rpe = request.average_rpe
    pattern = performance_pattern(request)
    days_until_race = (request.race_date - request.today).days

    upcoming_phase = ""
    if request.phase_map:
        first = CyclePhase(request.phase_map[min(request.phase_map)]).value
        upcoming_phase = f"The runner is entering her {first} phase."

    return f"""Write a short note from a supportive running coach explaining how the runner's plan was adjusted.

Runner:
- Race: {request.race_name} on {request.race_date.isoformat()} ({days_until_race} days away)
- Fitness level: {request.fitness_level}

Recent sessions ({total}):
- Completed as planned: {completed}
- Modified (>20% deviation): {request.modified_count}
- Skipped: {request.skipped_count}
- Average RPE: {f'{avg_rpe:.1f}/10' if avg_rpe is not None else 'N/A'}
- Pattern: {pattern}

{upcoming_phase}

3-4 sentences: acknowledge the pattern ({pattern}), explain the adjustment, connect it to the cycle phase when known, end with encouragement.
Warm, plain language, no jargon, no over-praise. Return ONLY the summary text."""


# ---------------------------------------------------------------------------
# Gemini implementation
# ---------------------------------------------------------------------------

def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_plan_response(text: str) -> GeneratedPlan:
    """Parse and validate a JSON planner response."""
    if not text or not text.strip():
        raise PlanGenerationError("Planner returned an empty response")
    try:
        payload = json.loads(_strip_code_fences(text))
    except json.JSONDecodeError as e:
        raise PlanGenerationError(f"Planner response is not valid JSON: {e}") from e

    if isinstance(payload, list):
        payload = {"sessions": payload}
    try:
        return GeneratedPlan.model_validate(payload)
    except PydanticValidationError as e:
        raise PlanGenerationError(f"Planner response failed validation: {e}") from e


class GeminiPlanGenerator:
    """Gemini-backed planner."""

    def __init__(self, client=None, model: Optional[str] = None):
        """
        Args:
            client: google.genai.Client instance. Built from GOOGLE_API_KEY when omitted.
            model: Gemini model name, defaults to PLANNER_MODEL.
        """
        if client is None:
            client = genai.Client(
                api_key=settings.GOOGLE_API_KEY,
                http_options=genai_types.HttpOptions(timeout=settings.PLANNER_TIMEOUT_S * 1000),
            )
        self.client = client
        self.model = model or settings.PLANNER_MODEL

    def generate(self, request: PlanGenerationRequest) -> GeneratedPlan:
        text = self._call_llm(build_generation_prompt(request), json_mode=True)
        plan = parse_plan_response(text)
        logger.info(f"Gemini generated {len(plan.sessions)} sessions for {request.race_name}")
        return plan

    def recalculate(self, request: RecalculationRequest) -> GeneratedPlan:
        text = self._call_llm(build_recalculation_prompt(request), json_mode=True)
        plan = parse_plan_response(text)
        logger.info(
            f"Gemini recalculated {len(plan.sessions)} sessions "
            f"({request.window_start} to {request.window_end})"
        )
        return plan

    def summarize(self, request: RecalculationRequest) -> str:
        text = self._call_llm(build_summary_prompt(request), json_mode=False)
        text = text.strip()
        if not text:
            raise PlanGenerationError("Planner returned an empty summary")
        return text

    def _call_llm(self, user_prompt: str, json_mode: bool) -> str:
        start = time.monotonic()
        contents = [
            genai_types.Content(
                role="user",
                parts=[genai_types.Part(text=user_prompt)],
            ),
        ]
        config = genai_types.GenerateContentConfig(
            system_instruction=SYSTEM_PROMPT,
            max_output_tokens=PLANNER_MAX_TOKENS if json_mode else SUMMARY_MAX_TOKENS,
            temperature=PLANNER_TEMPERATURE if json_mode else SUMMARY_TEMPERATURE,
            response_mime_type="application/json" if json_mode else "text/plain",
        )

        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            logger.error(f"Gemini call failed: {type(e).__name__}: {e}")
            raise PlanGenerationError(f"Gemini call failed: {e}") from e

        latency_ms = int((time.monotonic() - start) * 1000)

        text = ""
        if response.candidates:
            candidate = response.candidates[0]
            if candidate.content and candidate.content.parts:
                text = candidate.content.parts[0].text or ""

        input_tokens = 0
        output_tokens = 0
        if getattr(response, "usage_metadata", None):
            input_tokens = getattr(response.usage_metadata, "prompt_token_count", 0) or 0
            output_tokens = getattr(response.usage_metadata, "candidates_token_count", 0) or 0

        logger.debug(
            f"Gemini response: {len(text)} chars, {input_tokens} in / {output_tokens} out tokens, {latency_ms}ms"
        )
        return text


# ---------------------------------------------------------------------------
# Template implementation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class _TemplateSession:
    session_name: str
    weekday: int  # Monday=0
    workout_type: WorkoutType
    intensity_level: IntensityLevel
    duration_minutes: Optional[int]
    distance: Optional[float]
    warm_up: Optional[str]
    description: str
    hr_zones: Optional[str]


BEGINNER_WEEK = [
    _TemplateSession("Rest Day", 0, WorkoutType.REST, IntensityLevel.LOW, None, None,
                     None, "Complete rest or light stretching", None),
    _TemplateSession("Easy Run", 1, WorkoutType.EASY, IntensityLevel.LOW, 30, 5.0,
                     "5 min walk + 5 min easy jog", "Comfortable pace, conversational effort", "Zone 2"),
    _TemplateSession("Rest Day", 2, WorkoutType.REST, IntensityLevel.LOW, None, None,
                     None, "Complete rest or active recovery (walk)", None),
    _TemplateSession("Recovery Run", 3, WorkoutType.EASY, IntensityLevel.LOW, 25, 4.0,
                     "5 min walk", "Very easy effort, focus on form", "Zone 1-2"),
    _TemplateSession("Rest Day", 4, WorkoutType.REST, IntensityLevel.LOW, None, None,
                     None, "Complete rest day", None),
    _TemplateSession("Rest Day", 5, WorkoutType.REST, IntensityLevel.LOW, None, None,
                     None, "Rest before long run", None),
    _TemplateSession("Long Run", 6, WorkoutType.LONG, IntensityLevel.LOW, 45, 7.0,
                     "10 min easy jog", "Build endurance at comfortable pace", "Zone 2"),
]

STANDARD_WEEK = [
    _TemplateSession("Easy Run", 0, WorkoutType.EASY, IntensityLevel.LOW, 40, 6.0,
                     "10 min easy jog", "Relaxed pace, recovery focus", "Zone 2"),
    _TemplateSession("Rest Day", 1, WorkoutType.REST, IntensityLevel.LOW, None, None,
                     None, "Complete rest or active recovery", None),
    _TemplateSession("Interval Training", 2, WorkoutType.INTERVAL, IntensityLevel.HIGH, 50, 8.0,
                     "15 min easy + dynamic drills", "8x400m @ 5K pace with 90s recovery jog", "Zone 4-5"),
    _TemplateSession("Rest Day", 3, WorkoutType.REST, IntensityLevel.LOW, None, None,
                     None, "Recovery day between hard efforts", None),
    _TemplateSession("Tempo Run", 4, WorkoutType.TEMPO, IntensityLevel.MODERATE, 45, 7.0,
                     "10 min easy jog", "20 min at comfortably hard pace (threshold)", "Zone 3-4"),
    _TemplateSession("Rest Day", 5, WorkoutType.REST, IntensityLevel.LOW, None, None,
                     None, "Rest before long run", None),
    _TemplateSession("Long Run", 6, WorkoutType.LONG, IntensityLevel.LOW, 75, 12.0,
                     "15 min easy jog", "Build endurance at steady, comfortable pace", "Zone 2-3"),
]

TAPER_WEEKS = 2
TAPER_MULTIPLIER = 0.6
SCALE_BACK_MULTIPLIER = 0.85

TEMPLATE_GUIDANCE = {
    CyclePhase.FOLLICULAR: "Rising energy - great time for quality training and building strength!",
    CyclePhase.OVULATORY: "Peak performance window - harness your maximum power today!",
    CyclePhase.LUTEAL: "Body needs more recovery - focus on consistent, sustainable effort.",
}
DEFAULT_TEMPLATE_GUIDANCE = "Listen to your body and adjust effort as needed."


def _template_for(fitness_level: str) -> List[_TemplateSession]:
    return BEGINNER_WEEK if (fitness_level or "").lower() == "beginner" else STANDARD_WEEK


def _adjust_for_phase(template: _TemplateSession, phase: Optional[CyclePhase]):
    """Soften hard sessions in menstrual and luteal phases."""
    workout_type = template.workout_type
    intensity = template.intensity_level
    if phase in (CyclePhase.MENSTRUAL, CyclePhase.LUTEAL) and intensity == IntensityLevel.HIGH:
        intensity = IntensityLevel.MODERATE
    if phase == CyclePhase.MENSTRUAL and workout_type in (WorkoutType.INTERVAL, WorkoutType.TEMPO):
        workout_type = WorkoutType.EASY
    return workout_type, intensity


def _template_guidance(phase: Optional[CyclePhase], workout_type: WorkoutType) -> str:
    if phase is None:
        return DEFAULT_TEMPLATE_GUIDANCE
    if phase == CyclePhase.MENSTRUAL:
        if workout_type == WorkoutType.REST:
            return "Recovery period - prioritize rest and self-care."
        return "Low energy phase - keep effort easy and comfortable."
    return TEMPLATE_GUIDANCE[phase]


class FallbackPlanGenerator:
    """Rule-based weekly templates keyed on fitness level."""

    def generate(self, request: PlanGenerationRequest) -> GeneratedPlan:
        logger.warning(f"Using template plan generator for race: {request.race_name}")
        taper_start = request.race_date - timedelta(days=TAPER_WEEKS * 7)
        sessions = self._sessions_for_range(
            request.fitness_level,
            request.start_date,
            min(request.end_date, request.race_date),
            request.phase_map,
            multiplier_for=lambda d: TAPER_MULTIPLIER if d > taper_start else 1.0,
        )
        label = distance_label(request.distance_type, request.distance)
        return GeneratedPlan(
            plan_name=f"{label} Training Plan (Template)",
            sessions=sessions,
            generation_source="template",
        )

    def recalculate(self, request: RecalculationRequest) -> GeneratedPlan:
        logger.warning(f"Using template recalculation for plan: {request.plan_name}")
        scale = SCALE_BACK_MULTIPLIER if (request.skipped_count or request.modified_count) else 1.0
        taper_start = request.race_date - timedelta(days=TAPER_WEEKS * 7)
        sessions = self._sessions_for_range(
            request.fitness_level,
            request.window_start,
            request.window_end,
            request.phase_map,
            multiplier_for=lambda d: scale * (TAPER_MULTIPLIER if d > taper_start else 1.0),
        )
        return GeneratedPlan(
            plan_name=f"{request.plan_name} (Adapted)",
            sessions=sessions,
            generation_source="template",
        )

    def summarize(self, request: RecalculationRequest) -> str:
        pattern = performance_pattern(request)
        total = len(request.recent_sessions)
        if pattern == "inconsistent":
            return (
                f"You skipped {request.skipped_count} of your last {total} sessions, "
                "so the coming week has been simplified with more easy running. "
                "Consistency first, the fitness will follow."
            )
        if pattern == "underperforming":
            return (
                "Your recent runs came in shorter than planned, so upcoming volume has been scaled back "
                "to rebuild confidence. Small, consistent efforts win races."
            )
        if pattern == "overperforming":
            return (
                "You have been running beyond your planned distances. Your upcoming sessions reflect "
                "that fitness while keeping recovery in place."
            )
        return "Your upcoming sessions have been refreshed to keep you on track for race day."

    def _sessions_for_range(self, fitness_level, start, end, phase_map, multiplier_for):
        week = {t.weekday: t for t in _template_for(fitness_level)}
        sessions: List[GeneratedSession] = []
        current = start
        while current <= end:
            template = week[current.weekday()]
            phase = phase_map.get(current) if phase_map else None
            workout_type, intensity = _adjust_for_phase(template, phase)
            multiplier = multiplier_for(current)
            sessions.append(GeneratedSession(
                session_name=template.session_name,
                scheduled_date=current,
                workout_type=workout_type,
                intensity_level=intensity,
                warm_up=template.warm_up,
                description=template.description,
                duration_minutes=int(template.duration_minutes * multiplier) if template.duration_minutes else None,
                distance=round(template.distance * multiplier, 1) if template.distance else None,
                hr_zones=template.hr_zones,
                cycle_phase=phase,
                phase_guidance=_template_guidance(phase, workout_type),
            ))
            current += timedelta(days=1)
        return sessions


def get_plan_generator() -> AIPlanGenerator:
    """Gemini when an API key is configured, templates otherwise."""
    if settings.GOOGLE_API_KEY:
        return GeminiPlanGenerator()
    logger.info("GOOGLE_API_KEY not set; using template plan generator")
    return FallbackPlanGenerator()
