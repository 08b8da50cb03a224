"""
Desktop integration helpers for the PDF Toolbox window.
"""

from .fs import open_in_file_manager, open_with_system_viewer

__all__ = ["open_in_file_manager", "open_with_system_viewer"]
