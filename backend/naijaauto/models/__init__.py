from .user import User, SellerProfile, DealerProfile
from .otp import OtpVerification
from .listing import Listing, ListingPhotoHash, ListingContactEvent, Favorite
from .moderation import ModerationReview
from .payment import FeaturedPackage, PaymentTransaction
from .notification import Notification, AuditLog
from .location import Location

__all__ = [
    "User",
    "SellerProfile",
    "DealerProfile",
    "OtpVerification",
    "Listing",
    "ListingPhotoHash",
    "ListingContactEvent",
    "Favorite",
    "ModerationReview",
    "FeaturedPackage",
    "PaymentTransaction",
    "Notification",
    "AuditLog",
    "Location",
]
