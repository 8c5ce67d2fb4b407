class RecommendationError(Exception):
    """Base error rendered as a JSON ``{"error", "details"}`` payload."""

    status_code: int = 500

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, str]:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidRequestError(RecommendationError):
    status_code = 400


class TitleNotFoundError(RecommendationError):
    status_code = 404


class UpstreamError(RecommendationError):
    status_code = 502


class GenerationError(RecommendationError):
    status_code = 500


class GenerationUnavailableError(GenerationError):
    status_code = 503
