"""
Atom definition package.

Defines the atom model and the pieces evaluation is built from:

- models: Atom, lifecycle/type enums and declared test cases.
- logic: Typed logic payload per atom type and their parsers.
- parameters: Declared input parameter schema and type checks.
- operators: Comparison and logical operators with fail-closed coercion.
- library: Factories for commonly used atoms.
"""
