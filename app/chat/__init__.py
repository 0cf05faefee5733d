"""
Chat package: the relay endpoint and the chat session API.

The relay is the public proxy that forwards a question upstream with a
server-held credential. The session endpoints drive the chat
orchestrator for a chat widget: create a session, pick a model, send a
message, and read the transcript back.
"""

from .router import relay_router, router as chat_router  # noqa: F401
