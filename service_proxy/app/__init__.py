"""
Unified AI Proxy service package.

The proxy fans a client prompt out to several third-party content APIs:
- Wikipedia: plain-text article summary, plus a raw passthrough endpoint
- RSS/Atom feeds: configured once at startup, filtered per prompt
- Keyword search: DuckDuckGo wrapper API
- Generative text: streamed from an ordered key/model fallback chain

Structure:
- app.main: FastAPI app, routes, and startup/shutdown wiring.
- app.adapters: One HTTP client per upstream, each degrading to a placeholder.
- app.caching: In-memory TTL cache and key builders.
- app.preload: Background feed cache warming.
- app.domain: Request-scoped aggregation.
"""
