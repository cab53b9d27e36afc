from contextlib import contextmanager
from typing import Any, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
import structlog

from pumpkin.core.exceptions import ConflictError, NotFoundError, UnexpectedError, ValidationError
from pumpkin.db.errors import DocumentConflict, DocumentNotFound, InvalidDocument, StoreError

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_payload(model: Type[ModelT], payload: Any) -> ModelT:
    """Validate a request body against ``model``.

    Callers run this only after the credential and the guard have passed.
    """
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"{location}: {first['msg']}" if location else first["msg"])


@contextmanager
def translate_store_errors():
    """Map storage error kinds onto API error kinds.

    Only the message of not-found, conflict and invalid-document errors is
    passed on; every other storage failure becomes a generic UnexpectedError.
    """
    try:
        yield
    except DocumentNotFound as e:
        raise NotFoundError(e.message)
    except DocumentConflict as e:
        raise ConflictError(e.message)
    except InvalidDocument as e:
        raise ValidationError(e.message)
    except StoreError as e:
        logger.error("Storage failure", error_type=type(e).__name__, error=e.message)
        raise UnexpectedError("An unexpected error occurred")
