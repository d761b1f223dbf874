"""
Connectors.

- live_channel.py: WebSocket push channel with reconnect/backoff
- console_connector.py: terminal rendering of the merged view
"""
