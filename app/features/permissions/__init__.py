"""
Permission policy feature module.

Holds the module registry, the policy codec (permission strings <-> capability
matrix) and the matrix mutator, plus stateless endpoints over them.
"""
