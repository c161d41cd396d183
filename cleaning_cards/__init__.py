"""Public API for cleaning_cards.

Expose a small, explicit set of helpers used by the server, the client and tests.
"""
from importlib.metadata import version, PackageNotFoundError

try:
	__version__ = version("cleaning-cards")
except PackageNotFoundError:
	__version__ = "0.0.0"

from .config import Settings, load_config
from .errors import (
	CleaningCardsError,
	ImageDecodeFailed,
	HeicConversionFailed,
	ModelError,
	MissingApiKey,
	HttpError,
	MissingContent,
	InvalidModelJson,
	InvalidRequest,
	UploadError,
	NoCardsGenerated,
)
from .models import RoomPhoto, CleaningCard, AnalysisRequest, InitialAnalysisResult, FollowupAnalysisResult
from .image_processing import prepare_photo, resize_image_bytes, convert_heic_to_jpeg, is_heic
from .image_io import load_photo
from .json_recovery import parse_json_with_recovery, normalize_initial, normalize_followup
from .model_client import call_model_with_retry
from .client import RoomPhotoClient

__all__ = [
	"Settings",
	"load_config",
	"CleaningCardsError",
	"ImageDecodeFailed",
	"HeicConversionFailed",
	"ModelError",
	"MissingApiKey",
	"HttpError",
	"MissingContent",
	"InvalidModelJson",
	"InvalidRequest",
	"UploadError",
	"NoCardsGenerated",
	"RoomPhoto",
	"CleaningCard",
	"AnalysisRequest",
	"InitialAnalysisResult",
	"FollowupAnalysisResult",
	"prepare_photo",
	"resize_image_bytes",
	"convert_heic_to_jpeg",
	"is_heic",
	"load_photo",
	"parse_json_with_recovery",
	"normalize_initial",
	"normalize_followup",
	"call_model_with_retry",
	"RoomPhotoClient",
	"__version__",
]
