"""
Shared utilities for the Unified AI Proxy.

This package aggregates the building blocks the proxy service is made of:

- config: Service configuration via pydantic-settings and the feed list loader
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI application scaffolding

Do not import from service_* packages into shared/.
"""
