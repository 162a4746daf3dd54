"""Collaborator services consumed by the pipeline and the HTTP surface.

- ProfileProvider: Lists the validation profiles offered to clients
- MapServiceUriResolver: Builds the map service route for a job
"""
