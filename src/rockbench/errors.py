class GenerationError(Exception):
    """A document or patch could not be generated; fatal for the run."""


class DestinationError(Exception):
    def __init__(self, message: str, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
