# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets; keep them in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "PREPMATE_APP_NAME": "App display name (default: prepmate).",
    "PREPMATE_LOG_LEVEL": "Console logging level (default: INFO).",
    # Storage
    "PREPMATE_DATA_DIR": "Local data directory (default: .local/prepmate).",
    "PREPMATE_STORAGE_BACKEND": "sqlite | json | memory (default: sqlite).",
    "PREPMATE_STORAGE_PATH": (
        "Storage file (default: <data_dir>/storage.sqlite3, or storage.json for the json backend)."
    ),
    "PREPMATE_TASKS_KEY": "Key of the task snapshot inside the storage (default: allTasks).",
    # LLM / OpenRouter
    "PREPMATE_OPENROUTER_API_KEY": "OpenRouter API key (only needed for /suggest).",
    "PREPMATE_OPENROUTER_BASE_URL": "OpenRouter base URL (default: https://openrouter.ai/api/v1).",
    "PREPMATE_LLM_MODELS": "Comma/space separated list of models to try in order.",
    "PREPMATE_HTTP_REFERER": "Optional OpenRouter metadata header.",
    "PREPMATE_APP_TITLE": "Optional OpenRouter metadata header title.",
    "PREPMATE_LLM_FIRST_TOKEN_TIMEOUT_SECONDS": "Give up on a model after this long without output (20).",
    "PREPMATE_LLM_READ_TIMEOUT_SECONDS": "HTTP read timeout (25).",
    "PREPMATE_LLM_CONNECT_TIMEOUT_SECONDS": "HTTP connect timeout (5).",
    # Assistant
    "PREPMATE_SUGGEST_LIMIT": "Max tasks returned by /suggest (default: 5).",
}
