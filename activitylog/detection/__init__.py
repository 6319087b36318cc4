"""User-agent device and bot detection."""

from activitylog.detection.device import CachedDeviceClassifier, DeviceClassifier

__all__ = ["CachedDeviceClassifier", "DeviceClassifier"]
