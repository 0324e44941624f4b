from .db_config import SessionLocal, Base, get_db
from .db_model import (
    Agent,
    EvaluationMethodConfiguration,
    EvaluationMethodConfigurationMeta,
    File,
    Opportunity,
    Registration,
    RegistrationEvaluation,
    RegistrationFieldConfiguration,
    RegistrationFileConfiguration,
    RegistrationMeta,
)

__all__ = [
    "SessionLocal",
    "Base",
    "get_db",
    "Agent",
    "EvaluationMethodConfiguration",
    "EvaluationMethodConfigurationMeta",
    "File",
    "Opportunity",
    "Registration",
    "RegistrationEvaluation",
    "RegistrationFieldConfiguration",
    "RegistrationFileConfiguration",
    "RegistrationMeta",
]
