"""Exception types raised inside the campaign canvas package."""


class CampaignCanvasError(RuntimeError):
    """Base class for errors raised by this package."""


class MediaLoadError(CampaignCanvasError):
    """An image, video frame, logo or icon could not be fetched or decoded."""


class CanvasUnavailableError(CampaignCanvasError):
    """A drawing surface could not be created for the requested size."""


class VisualAnalysisError(CampaignCanvasError):
    """The AI visual-analysis service was unavailable or returned garbage."""


class LayoutAnalysisError(CampaignCanvasError):
    """Grid layout analysis could not read the source image."""
