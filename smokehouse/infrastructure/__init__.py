"""Infrastructure Layer — database engine, logging and provider clients (Stripe, Square, Resend).

Invariants:
    - Provider payloads are translated to core types before leaving this layer
    - Network calls have timeouts and bounded retries
"""
