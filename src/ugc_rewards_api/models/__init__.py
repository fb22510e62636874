"""SQLAlchemy models package."""

from .merchant import PERCENTAGE_CURRENCY, Merchant, RewardTypeEnum  # noqa: F401
from .customer import Customer  # noqa: F401
from .invitation import Invitation  # noqa: F401
from .submission import (  # noqa: F401
    Reward,
    RewardStatusEnum,
    Submission,
    SubmissionStatusEnum,
)
from .upload_token import UploadToken  # noqa: F401
from .webhook_event import WebhookEvent, WebhookProviderEnum  # noqa: F401
