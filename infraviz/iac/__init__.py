"""
Infrastructure-as-Code rendering.
"""

from .terraform import render_terraform, write_terraform

__all__ = ["render_terraform", "write_terraform"]
