"""
Eligibility Service package.

Evaluates composable, reusable eligibility rules ("atoms") against a
customer/request context and produces admit/deny decisions. It provides:

- app.atoms: Atom definition model, logic payloads, operators, atom library.
- app.resolution: Dependency graph construction and execution ordering.
- app.validation: Structural, semantic and activation validation.
- app.execution: Execution engine, worker pool and statistics recorder.
- app.cache: Result cache stores (in-memory and Redis).
- app.store: Atom store contract and in-memory implementation.
- app.testing: Test harness replaying declared test cases.
- app.service: Entry points consumed by a thin API layer.

Guidelines:
- The engine is stateless per request; tenant and request identity are
  passed explicitly with every call.
- Keep evaluation deterministic and observable (metrics + logs).
"""
