from .accounts import (
    Account,
    AccountListResponse,
    AccountResponse,
    ProfileUpdateRequest,
    Role,
    RoleUpdateRequest,
    VerifiedIdentity,
)
from .admin import AdminStats
from .lessons import (
    AccessTier,
    Category,
    EmotionalTone,
    FavoriteToggleResponse,
    Lesson,
    LessonCreateRequest,
    LessonListQuery,
    LessonListResponse,
    LessonSort,
    LessonUpdateRequest,
    LessonView,
    LikeToggleResponse,
    Visibility,
)
from .payments import (
    CheckoutSessionResponse,
    CheckoutVerifyResponse,
    EntitlementOutcome,
    EntitlementResult,
    PaymentConfirmation,
    PaymentLookupKeys,
)
from .social import (
    Comment,
    CommentCreateRequest,
    CommentListResponse,
    Report,
    ReportCreateRequest,
    ReportReason,
    ReportSummary,
    ReportSummaryListResponse,
)

__all__ = [
    "AccessTier",
    "Account",
    "AccountListResponse",
    "AccountResponse",
    "AdminStats",
    "Category",
    "CheckoutSessionResponse",
    "CheckoutVerifyResponse",
    "Comment",
    "CommentCreateRequest",
    "CommentListResponse",
    "EmotionalTone",
    "EntitlementOutcome",
    "EntitlementResult",
    "FavoriteToggleResponse",
    "Lesson",
    "LessonCreateRequest",
    "LessonListQuery",
    "LessonListResponse",
    "LessonSort",
    "LessonUpdateRequest",
    "LessonView",
    "LikeToggleResponse",
    "PaymentConfirmation",
    "PaymentLookupKeys",
    "ProfileUpdateRequest",
    "Report",
    "ReportCreateRequest",
    "ReportReason",
    "ReportSummary",
    "ReportSummaryListResponse",
    "Role",
    "RoleUpdateRequest",
    "VerifiedIdentity",
    "Visibility",
]
