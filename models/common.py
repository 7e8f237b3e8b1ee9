# models/common.py
import uuid
from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, TypeAdapter, ValidationError

from services.errors import ValidationFailed


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # Naive values (including bare dates) are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


def new_id() -> str:
    return str(uuid.uuid4())


def load(model, data):
    """Validate ``data`` against a model class or a TypeAdapter.

    Pydantic's own errors are reported as ``ValidationFailed`` so that callers
    only ever deal with the LMS error taxonomy.
    """
    try:
        if isinstance(model, TypeAdapter):
            return model.validate_python(data)
        return model.model_validate(data)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'payload'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationFailed("InvalidPayload", f"Invalid payload: {details}")
