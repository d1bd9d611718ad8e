"""SQLAlchemy ORM models used by the API layer."""

from .user import UserModel
from .video import VideoModel
from .transcript import TranscriptModel
from .script import ScriptModel
from .audience import CustomAudienceModel
from .usage import UsageLogModel
from .rate_limit import RateLimitCounterModel

__all__ = [
    "UserModel",
    "VideoModel",
    "TranscriptModel",
    "ScriptModel",
    "CustomAudienceModel",
    "UsageLogModel",
    "RateLimitCounterModel",
]
