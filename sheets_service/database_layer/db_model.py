"""
Database Models Module

This module defines read-only SQLAlchemy ORM models for the parts of the
Mapas Culturais schema the sheet generator reads:
- Opportunity: phases; a child phase points to its parent through parent_id
- Agent: the person behind a registration
- Registration: one submission of one agent in one phase
- RegistrationMeta: dynamic answers (field_<id> keys) and phase back-links
- RegistrationFieldConfiguration / RegistrationFileConfiguration: declared fields per phase
- File: uploaded attachments, grouped by "rfc_<file configuration id>"
- EvaluationMethodConfiguration / EvaluationMethodConfigurationMeta: rubric definitions
- RegistrationEvaluation: evaluation payloads and stored results

Table and column names follow the upstream schema; nothing here is created
or migrated by this service.
"""

from sqlalchemy import Column, DateTime, Integer, String, Boolean, ForeignKey, Text, SmallInteger
from sqlalchemy.orm import relationship
from sheets_service.database_layer.db_config import Base
import logging

logger = logging.getLogger("app_logger")

PREVIOUS_PHASE_META_KEY = "previousPhaseRegistrationId"
FIELD_META_PREFIX = "field_"
FILE_GROUP_PREFIX = "rfc_"


class Opportunity(Base):
    """Opportunity (phase) node"""
    __tablename__ = 'opportunity'

    id = Column(Integer, primary_key=True)
    parent_id = Column(Integer, ForeignKey('opportunity.id'), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    status = Column(SmallInteger, nullable=False, default=1)
    published_registrations = Column(Boolean, nullable=False, default=False)

    parent = relationship("Opportunity", remote_side=[id])


class Agent(Base):
    """Agent (applicant) model"""
    __tablename__ = 'agent'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)


class Registration(Base):
    """Registration of one agent in one opportunity"""
    __tablename__ = 'registration'

    id = Column(Integer, primary_key=True)
    number = Column(String(24), nullable=True)
    opportunity_id = Column(Integer, ForeignKey('opportunity.id'), nullable=False, index=True)
    agent_id = Column(Integer, ForeignKey('agent.id'), nullable=True, index=True)
    status = Column(SmallInteger, nullable=False, default=0)

    agent = relationship("Agent", foreign_keys=[agent_id])
    opportunity = relationship("Opportunity", foreign_keys=[opportunity_id])


class RegistrationMeta(Base):
    """Key/value metadata attached to a registration"""
    __tablename__ = 'registration_meta'

    id = Column(Integer, primary_key=True)
    object_id = Column(Integer, ForeignKey('registration.id'), nullable=False, index=True)
    key = Column(String(128), nullable=False)
    value = Column(Text, nullable=True)


class RegistrationFieldConfiguration(Base):
    """Declared dynamic field of a phase form"""
    __tablename__ = 'registration_field_configuration'

    id = Column(Integer, primary_key=True)
    opportunity_id = Column(Integer, ForeignKey('opportunity.id'), nullable=False, index=True)
    title = Column(String(255), nullable=True)
    display_order = Column(SmallInteger, nullable=True, default=255)


class RegistrationFileConfiguration(Base):
    """Declared file upload slot of a phase form"""
    __tablename__ = 'registration_file_configuration'

    id = Column(Integer, primary_key=True)
    opportunity_id = Column(Integer, ForeignKey('opportunity.id'), nullable=False, index=True)
    title = Column(String(255), nullable=True)
    display_order = Column(SmallInteger, nullable=True, default=255)


class File(Base):
    """Uploaded file; object_id is the registration, grp is rfc_<file configuration id>"""
    __tablename__ = 'file'

    id = Column(Integer, primary_key=True)
    object_id = Column(Integer, nullable=False, index=True)
    object_type = Column(String(255), nullable=True)
    grp = Column(String(32), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    create_timestamp = Column(DateTime, nullable=True)


class EvaluationMethodConfiguration(Base):
    """Evaluation method attached to an opportunity"""
    __tablename__ = 'evaluation_method_configuration'

    id = Column(Integer, primary_key=True)
    opportunity_id = Column(Integer, ForeignKey('opportunity.id'), nullable=False, index=True)
    type = Column(String(255), nullable=False)


class EvaluationMethodConfigurationMeta(Base):
    """JSON-encoded configuration values (sections, criteria, ...)"""
    __tablename__ = 'evaluationmethodconfiguration_meta'

    id = Column(Integer, primary_key=True)
    object_id = Column(Integer, ForeignKey('evaluation_method_configuration.id'), nullable=False, index=True)
    key = Column(String(128), nullable=False)
    value = Column(Text, nullable=True)


class RegistrationEvaluation(Base):
    """Evaluation of a registration; result holds the stored total"""
    __tablename__ = 'registration_evaluation'

    id = Column(Integer, primary_key=True)
    registration_id = Column(Integer, ForeignKey('registration.id'), nullable=False, index=True)
    user_id = Column(Integer, nullable=True)
    result = Column(String(255), nullable=True)
    evaluation_data = Column(Text, nullable=True)
    status = Column(SmallInteger, nullable=True)
