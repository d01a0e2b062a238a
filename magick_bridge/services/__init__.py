from .bridge_service import MagickBridgeService, build_service
from .preview_provider import MagickPreviewProvider

__all__ = ["MagickBridgeService", "MagickPreviewProvider", "build_service"]
