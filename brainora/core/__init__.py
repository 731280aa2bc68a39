"""Core orchestration package.

Architectural role:
    Exposes the conversation engine that sits between the API/CLI adapters and
    the generation gateway and session store.

Composition:
    - `controller`: submission lifecycle, commit, and session navigation.
    - `dispatcher`: strategy selection and execution.
    - `stream_aggregator`: incremental assembly of streamed answers.
    - `state`: active conversation state and change events.
    - `routing_types`: mode/strategy vocabulary and dispatch results.

Determinism and side effects:
    Package import itself is deterministic and side-effect free.
"""
