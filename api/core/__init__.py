"""
Shared, cross-cutting code for the API.

`core/` should contain small building blocks that multiple features use
(settings, DB wiring, object storage, logging). Keep feature-specific SQL and
business logic in the corresponding feature package (e.g. `submissions/`).
"""
