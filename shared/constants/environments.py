from enum import Enum


class Environment(str, Enum):
    """Deployment environment, as named by ``APP_ENVIRONMENT``."""

    PRODUCTION = "production"
    STAGING = "staging"
    TESTING = "testing"
    DEVELOPMENT = "development"

    @classmethod
    def parse(cls, value: str) -> "Environment":
        """Case-insensitive lookup; unknown names are treated as production."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.PRODUCTION

    @property
    def verbose_logging(self) -> bool:
        return self is Environment.DEVELOPMENT
