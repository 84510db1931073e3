"""
View Redactor

Decides how much of a vehicle's internal block a caller sees:
- PUBLIC_SLUG: storefront; the internal block is removed entirely
- PUBLIC_ID: detail pages; internal notes and target profit are removed
- INTERNAL: privileged callers; nothing is removed

Every call returns a freshly built dict, so redacting never alters the
resolved view or any cached payload.
"""
import copy
import enum
from typing import Any, Dict, Union

from royaldrive.schemas.vehicle import VehicleView

PUBLIC_ID_HIDDEN_FIELDS = ("notes", "targetProfit")


class ViewProfile(str, enum.Enum):
    PUBLIC_SLUG = "public-slug"
    PUBLIC_ID = "public-id"
    INTERNAL = "internal"


def profile_for(can_view_internal: bool) -> ViewProfile:
    """Profile for id-based reads and lists."""
    return ViewProfile.INTERNAL if can_view_internal else ViewProfile.PUBLIC_ID


def redact(view: Union[VehicleView, Dict[str, Any]], profile: ViewProfile) -> Dict[str, Any]:
    """
    Project a resolved vehicle for the given profile.

    Args:
        view: Resolved VehicleView, or an already serialised (camelCase) view
        profile: Target profile

    Returns:
        New camelCase dict safe to hand to the caller
    """
    if isinstance(view, VehicleView):
        data = view.model_dump(mode="json", by_alias=True)
    else:
        data = copy.deepcopy(view)

    if profile is ViewProfile.PUBLIC_SLUG:
        data.pop("internal", None)
    elif profile is ViewProfile.PUBLIC_ID:
        internal = data.get("internal")
        if isinstance(internal, dict):
            for field in PUBLIC_ID_HIDDEN_FIELDS:
                internal.pop(field, None)
    return data
