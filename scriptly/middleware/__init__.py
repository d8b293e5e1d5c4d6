# Middleware package init
"""
Scriptly Backend — Middleware Package
=======================================

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID first, so every later log line carries the correlation id
    2. Logging measures the full handling time and sees the final status
    3. GZip compresses large JSON bodies (over 500 bytes)
    4. CORS answers preflight requests and decorates responses

Authentication is not middleware: routes declare it per endpoint through
the dependencies in routes/deps.py, because several reads are public.
"""
