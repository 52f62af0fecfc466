# src/prepmate/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (storage/task store/LLM).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import LLMClient
from ..core.state import AppState
from ..llm.client import OpenRouterLLMClient
from ..llm.offline import OfflineLLMClient
from ..storage.kv import open_storage
from ..tasks.task_store import TASKS_STORAGE_KEY, TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    if getattr(settings, "storage_backend", "sqlite") != "memory":
        settings.storage_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    llm_client: LLMClient
    try:
        llm_client = OpenRouterLLMClient(settings)
    except RuntimeError as e:
        # No API key / models configured: keep the app usable offline.
        logger.info("LLM not configured (%s); using offline client.", e)
        llm_client = OfflineLLMClient()

    storage = open_storage(settings)
    task_store = TaskStore(storage, key=getattr(settings, "tasks_key", TASKS_STORAGE_KEY))

    return AppState(
        settings=settings,
        task_store=task_store,
        llm=llm_client,
    )
