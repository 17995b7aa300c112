"""
Social Relay
------------
Relays a text post to Bluesky and Threads, and runs the Threads OAuth flow.
"""

__version__ = "1.0.0"
