"""
agent_live: live view of a remote browser-automation task.

Progress arrives on two channels, merged at read time:
- polling (tasks.session.TaskSessionController)
- push events over WebSocket (connectors.live_channel.LiveEventSynchronizer)
"""

__version__ = "0.1.0"
