"""
InfraViz - infrastructure diagramming core.

Turns free-text architecture descriptions into typed resource graphs and
runs static security checks against them. Ships a CLI and a REST API on
top of the same in-process functions.
"""

__version__ = "0.1.0"
__author__ = "InfraViz"
