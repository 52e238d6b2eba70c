"""
FastAPI dependencies for the adaptation engine's collaborators.

Routers take the planner, job queue and clock through these so tests can
swap them with `app.dependency_overrides`.
"""
from core.clock import Clock, SystemClock
from services.ai_plan_generator import AIPlanGenerator, get_plan_generator as _build_plan_generator
from services.job_queue import CeleryJobQueue, JobQueue


def get_plan_generator() -> AIPlanGenerator:
    return _build_plan_generator()


def get_job_queue() -> JobQueue:
    return CeleryJobQueue()


def get_clock() -> Clock:
    return SystemClock()
