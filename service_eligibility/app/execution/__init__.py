"""
Atom execution package.

Modules of interest:
- engine: Orchestrates cache lookup, dependency execution and evaluation.
- evaluators: One evaluator per atom type, plus pluggable model handlers.
- pool: Bounded worker pool with caller-runs backpressure.
- statistics: Fire-and-forget execution statistics.
- models: Execution result and statistics records.
"""
