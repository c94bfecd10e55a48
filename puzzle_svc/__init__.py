"""
puzzle_svc: live multi-player chess puzzle sessions over WebSockets.
"""
__version__ = "1.0.0"
