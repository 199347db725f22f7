__all__ = [
    "AuthSettings",
    "DatabaseSettings",
    "GradeflowWebSettings",
    "GradingSettings",
    "LoggingSettings",
    "Secrets",
    "Settings",
    "StorageSettings",
    "WebSettings",
]


from .grading import GradingSettings
from .logging import LoggingSettings
from .secrets import Secrets
from .settings import Settings
from .storage import DatabaseSettings, StorageSettings
from .web import AuthSettings, GradeflowWebSettings, WebSettings
