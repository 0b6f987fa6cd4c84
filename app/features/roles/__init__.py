"""
Role feature module.

Role documents, the role edit session and the role store endpoints.
"""
