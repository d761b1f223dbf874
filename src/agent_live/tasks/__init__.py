"""
Task subsystem.

Components:
- task_models.py: wire data structures (Task, Step, Action, TaskEvent)
- sanitize.py: prompt validation before submission
- session.py: task session controller (submit, poll, reset)
"""
