# src/prepmate/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..tasks.task_store import TaskStore
from .ports import LLMClient


@dataclass
class AppState:
    """
    Explicit application context.

    Built once by the composition root (cli/bootstrap.py) and handed to every
    command handler and connector. There is no module-level store.
    """

    # Settings (or a SimpleNamespace with the same attributes in tests).
    settings: object

    task_store: TaskStore
    llm: LLMClient
