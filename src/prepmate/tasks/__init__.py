"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskPriority, TaskStatus)
- task_actions.py: action types + the pure reduce_tasks transition
- task_store.py: TaskStore (snapshot + key-value persistence + listeners)
- errors.py: error taxonomy shared by the store and its callers
"""
