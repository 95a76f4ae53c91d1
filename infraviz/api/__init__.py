"""REST API for InfraViz."""
