"""Exceptions raised while processing an uploaded video."""


class ViraFlowError(Exception):
    """Base class for every error the app raises itself."""


class ConfigError(ViraFlowError):
    """Required configuration is missing or invalid."""


class ReadError(ViraFlowError):
    """The uploaded file could not be read."""


class InferenceError(ViraFlowError):
    """Gemini answered, but not with something we can use."""


class EmptyResponseError(InferenceError):
    def __init__(self, message: str = "Failed to get a response from the model. Try another video.") -> None:
        super().__init__(message)


class MalformedResponseError(InferenceError):
    def __init__(self, message: str = "The model returned an unexpected response. Try again.") -> None:
        super().__init__(message)
