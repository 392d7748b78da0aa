"""
Serving — FastAPI application for the chat service.

Run with ``python -m grounded_chat serve`` or any ASGI server pointed at
``grounded_chat.serving.app:app``.
"""
