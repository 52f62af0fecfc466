# src/prepmate/llm/offline.py

from __future__ import annotations

import json
from collections.abc import Iterable

from ..core.ports import ChatMessage


class OfflineLLMClient:
    """
    Offline deterministic LLM client used when no external API is configured.

    Behavior:
    - Task suggestion prompts -> a small fixed study plan as JSON
    - Anything else -> a short hint on how to enable a real model
    """

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        sp = (system_prompt or "").lower()

        user_text = ""
        for m in reversed(messages):
            if m["role"] == "user":
                user_text = m["content"]
                break

        if "study task planner" in sp:
            goal = user_text.splitlines()[0].removeprefix("Goal:").strip() or "your goal"
            plan = {
                "tasks": [
                    {"title": f"Outline the topics for {goal}", "priority": "High"},
                    {"title": f"Work through practice problems for {goal}", "priority": "Medium"},
                    {"title": f"Review notes on {goal}", "priority": "Low"},
                ]
            }
            yield json.dumps(plan, ensure_ascii=False)
            return

        yield (
            "Offline mode: no external LLM is configured.\n"
            "Set PREPMATE_OPENROUTER_API_KEY (and PREPMATE_LLM_MODELS) to enable real responses."
        )
