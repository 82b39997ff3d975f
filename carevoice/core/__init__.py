"""Core orchestration package.

Architectural role:
    Exposes the session layer that sits between API/CLI entrypoints and the
    routing, memory and LLM-backed collaborators.

Composition:
    - `engine`: `CareSession` turn orchestration.
    - `routing_types`: screens and the routing decision schema.
    - `volunteer_matching`: roster and matching rules.

Determinism and side effects:
    Package import itself is deterministic and side-effect free.
"""
