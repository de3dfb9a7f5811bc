"""
Request payload models.
"""

from typing import List, Literal, Optional

from pydantic import (
    BaseModel, ConfigDict, Field, StrictBool, StrictInt, ValidationError as PydanticValidationError, field_validator,
)

from csat.errors import ValidationError
from utils import is_valid_email, normalize_email


class SubmissionMeta(BaseModel):
    model_config = ConfigDict(extra='allow')

    vessel: str = ''
    customerOwner: str = ''
    contact: str = ''
    position: str = ''


class AnswerIn(BaseModel):
    code: str = Field(min_length=1)
    relevant: StrictBool
    importance: Optional[Literal['HIGH', 'MEDIUM', 'LOW']] = None
    satisfaction: Optional[StrictInt] = Field(default=None, ge=0, le=5)


class SubmitPayload(BaseModel):
    meta: SubmissionMeta = Field(default_factory=SubmissionMeta)
    answers: List[AnswerIn]
    remark: Optional[str] = Field(default='', max_length=2000)


class OtpSendRequest(BaseModel):
    email: str


class OtpVerifyRequest(BaseModel):
    email: str
    code: str = Field(min_length=1, max_length=12)

    @field_validator('code', mode='before')
    @classmethod
    def code_as_string(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class AdminLoginRequest(BaseModel):
    email: str
    password: str = Field(min_length=1)

    @field_validator('email')
    @classmethod
    def valid_email(cls, value):
        value = normalize_email(value)
        if not is_valid_email(value):
            raise ValueError('Invalid email address')
        return value


def format_issues(error: PydanticValidationError):
    """Turn pydantic errors into a JSON friendly issue list."""
    return [
        {
            'path': list(item['loc']),
            'message': item['msg'],
            'code': item['type'],
        }
        for item in error.errors()
    ]


def parse_payload(model, data, message="Invalid payload"):
    """Validate ``data`` against ``model`` or raise a 400 with the issue list."""
    try:
        return model.model_validate(data if data is not None else {})
    except PydanticValidationError as e:
        raise ValidationError(message, issues=format_issues(e))
