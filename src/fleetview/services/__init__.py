"""Services operating on canonical device records."""

from fleetview.services.filtering import FilterState, filter_devices
from fleetview.services.upgrade import get_upgrade_recommendations

__all__ = ["FilterState", "filter_devices", "get_upgrade_recommendations"]
