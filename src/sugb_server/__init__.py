"""sugb_server — FastAPI application exposing the survey and report APIs.

Start with ``sugb-server`` (uvicorn) and, optionally, a separate
``sugb-report-worker`` for the report queue.
"""
