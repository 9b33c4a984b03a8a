# Middleware package init
"""
Volunteer API — Middleware Package
===================================

What:  The request admission pipeline every request crosses before routing.
Why:   Admission checks (origin, rate, size, input) apply to all handler
       groups; no handler repeats them.

Middleware Chain (outermost first):
    Request
      → [Security Headers]   hardening headers on every response
      → [Request ID]         correlation id for logs and X-Request-ID
      → [Access Log]         one line per request, final status
      → [Error Normalizer]   everything below that raises ends here
      → [Origin Policy]      403 for origins outside the allow-set; preflight
      → [Rate Limit]         429 above the per-client window budget (/api/ only)
      → [Body Limit]         413 above BODY_LIMIT
      → [Input Sanitizer]    400 on repeated query keys; markup escaped
      → [Request Timeout]    504 when a handler runs too long
      → Router (handler groups, static files, 404)

    Why this order:
    1. The normalizer sits outside every admission stage, so a PolicyError
       raised by any of them reaches it and is rendered like a handler error.
    2. Origin is decided before the rate budget is spent: blocked origins
       never count against a client.
    3. The body is bounded before the sanitizer buffers it.
    4. Logging sits outside the normalizer so it records normalized statuses.

    add_middleware() wraps in reverse order of addition: main.create_app()
    adds these innermost first.
"""
