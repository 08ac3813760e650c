from __future__ import annotations


class RecipeError(Exception):
    pass


class ValidationError(RecipeError):
    pass


class NotFoundError(RecipeError):
    pass


class DraftNotFoundError(NotFoundError):
    def __init__(self, draft_id: str):
        super().__init__(f"Draft not found or expired: {draft_id}")
        self.draft_id = draft_id


class RecipeNotFoundError(NotFoundError):
    def __init__(self, recipe_id: str):
        super().__init__(f"Recipe not found: {recipe_id}")
        self.recipe_id = recipe_id


class TransportError(RecipeError):
    retryable = True

    def __init__(self, service: str, reason: str):
        super().__init__(f"{service} request failed: {reason}")
        self.service = service
        self.reason = reason


class RateLimitedError(TransportError):
    def __init__(self, service: str, reason: str = "Rate limit reached"):
        super().__init__(service, reason)


class UpstreamTimeoutError(TransportError):
    def __init__(self, service: str, timeout_seconds: float):
        RecipeError.__init__(self, f"{service} request timed out after {timeout_seconds}s")
        self.service = service
        self.reason = "timeout"
        self.timeout_seconds = timeout_seconds


class SerializationError(RecipeError):
    retryable = False

    def __init__(self, message: str, raw: str | None = None):
        super().__init__(message)
        self.raw = raw


class PersistenceError(RecipeError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Persistence error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class DraftStorageError(RecipeError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Draft storage error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class ConfigurationError(RecipeError):
    def __init__(self, errors: list[str]):
        super().__init__(f"Configuration errors: {', '.join(errors)}")
        self.errors = errors
