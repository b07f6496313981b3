"""
Custom Exception Classes for the Job Match Engine
"""
from typing import Dict, Any


class MatchEngineBaseException(Exception):
    """Base exception for the match engine"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class ValidationError(MatchEngineBaseException):
    """Raised when input data validation fails"""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)
        super().__init__(message, error_code="VALIDATION_ERROR", details=details, **kwargs)


class ConfigurationError(MatchEngineBaseException):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, config_key: str = None, config_value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if config_key:
            details['config_key'] = config_key
        if config_value is not None:
            details['config_value'] = str(config_value)
        super().__init__(message, error_code="CONFIGURATION_ERROR", details=details, **kwargs)


class VectorStoreError(MatchEngineBaseException):
    """Raised inside a vector store adapter when the backend misbehaves"""

    def __init__(self, message: str, store_name: str = None, operation: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if store_name:
            details['store_name'] = store_name
        if operation:
            details['operation'] = operation
        super().__init__(message, error_code="VECTOR_STORE_ERROR", details=details, **kwargs)


class EmbeddingError(MatchEngineBaseException):
    """Raised when the embedding model call fails or returns garbage"""

    def __init__(self, message: str, model_name: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if model_name:
            details['model_name'] = model_name
        super().__init__(message, error_code="EMBEDDING_ERROR", details=details, **kwargs)


class ScoringError(MatchEngineBaseException):
    """Raised when scoring a single candidate/posting pair fails"""

    def __init__(self, message: str, job_id: str = None, candidate_id: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if job_id:
            details['job_id'] = job_id
        if candidate_id:
            details['candidate_id'] = candidate_id
        super().__init__(message, error_code="SCORING_ERROR", details=details, **kwargs)


class EntityNotFoundError(MatchEngineBaseException):
    """Raised when a candidate or posting cannot be fetched from its repository"""

    def __init__(self, message: str, entity_type: str = None, entity_id: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if entity_type:
            details['entity_type'] = entity_type
        if entity_id:
            details['entity_id'] = entity_id
        super().__init__(message, error_code="ENTITY_NOT_FOUND", details=details, **kwargs)


class ExceptionContext:
    """Context manager for handling exceptions with additional context"""

    def __init__(self, operation: str, logger=None, **context):
        self.operation = operation
        self.logger = logger
        self.context = context

    def __enter__(self):
        if self.logger:
            self.logger.debug(f"Starting operation: {self.operation}", extra={"context": self.context})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            if self.logger:
                self.logger.debug(f"Operation completed: {self.operation}", extra={"context": self.context})
            return False

        if self.logger:
            self.logger.error(
                f"Operation failed: {self.operation} - {exc_val}",
                extra={"context": self.context, "exception_type": exc_type.__name__}
            )

        # Re-raise custom exceptions as-is
        if isinstance(exc_val, MatchEngineBaseException):
            return False

        if isinstance(exc_val, (KeyError, ValueError, TypeError)):
            raise ValidationError(
                f"Validation error in {self.operation}: {str(exc_val)}",
                details=dict(self.context),
                cause=exc_val
            ) from exc_val

        raise ScoringError(
            f"Processing error in {self.operation}: {str(exc_val)}",
            details=dict(self.context),
            cause=exc_val
        ) from exc_val
