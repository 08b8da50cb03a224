"""
Reusable widgets for the PDF Toolbox window.
"""

from .drop_zone import DropZone
from .notification_manager import NotificationManager
from .status_indicator import StatusIndicatorWidget, StatusState

__all__ = ["DropZone", "NotificationManager", "StatusIndicatorWidget", "StatusState"]
