"""
Poet Proxy package.

Provides:
- Retrying Gemini request executor with text/image response extraction
- Edge HTTP proxy via FastAPI with CORS-ready JSON envelopes
- Local CLI runner for one-off generations
"""
