"""Pixelfeed — FastAPI REST API layer.

This package contains the FastAPI application, Pydantic request/response
models, the error taxonomy and the feed pagination helpers.

Modules
-------
main
    FastAPI application factory, route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic models for API request and response validation.
errors
    ``APIError`` hierarchy and the exception handlers that render it.
feed
    Query-parameter resolution and page arithmetic for ``GET /api/feed``.
"""
