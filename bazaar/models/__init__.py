from bazaar.models.user import User, AccountStatus, MODERATOR_ROLES
from bazaar.models.taxonomy import Division, District, Area, Category, Brand, BrandModel
from bazaar.models.post import (
    Post,
    PostDetails,
    PostReport,
    ModerationState,
    MAIN_SLOT,
    DETAIL_SLOTS,
    IMAGE_SLOTS,
)
from bazaar.models.moderation_transition import ModerationTransition
from bazaar.models.notification import Notification

__all__ = [
    "User",
    "AccountStatus",
    "MODERATOR_ROLES",
    "Division",
    "District",
    "Area",
    "Category",
    "Brand",
    "BrandModel",
    "Post",
    "PostDetails",
    "PostReport",
    "ModerationState",
    "MAIN_SLOT",
    "DETAIL_SLOTS",
    "IMAGE_SLOTS",
    "ModerationTransition",
    "Notification",
]
