from enum import Enum

from .exceptions import ValidationError


class _ValueEnum(str, Enum):
    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value, field: str):
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ValidationError.validation(field, value, f"must be one of: {allowed}") from None


class UserRole(_ValueEnum):
    ADMIN = "ADMIN"
    TRAINER = "TRAINER"
    PARTICIPANT = "PARTICIPANT"


class CourseStatus(_ValueEnum):
    ACTIVE = "active"
    FINISHED = "finished"


class EnrollmentStatus(_ValueEnum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
