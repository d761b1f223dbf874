"""
Core: errors, ports (Protocols), the read-time merge and the AppState composition.
"""
