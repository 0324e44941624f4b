"""Pytest configuration and shared fixtures."""

import json
import os
import tempfile

# settings are read at import time
os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("USE_REDIS", "false")
os.environ.setdefault("SHEETS_LOG_DIR", os.path.join(tempfile.gettempdir(), "sheets-test-logs"))

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from sheets_service.cache_db import SheetCache
from sheets_service.database_layer import (
    Agent,
    Base,
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
from sheets_service.database_layer.db_model import PREVIOUS_PHASE_META_KEY


class QueryCounter:
    """Records every SELECT issued on an engine."""

    def __init__(self):
        self.statements = []

    def __call__(self, conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("SELECT"):
            self.statements.append(statement)

    @property
    def count(self) -> int:
        return len(self.statements)

    def reset(self):
        self.statements = []


class MapasSeeder:
    """Inserts Mapas Culturais rows for a test."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def add(self, *objects):
        db = self.session_factory()
        try:
            db.add_all(objects)
            db.commit()
        finally:
            db.close()

    def opportunity(self, id, name, parent_id=None, published=True, status=1):
        self.add(Opportunity(id=id, name=name, parent_id=parent_id, published_registrations=published, status=status))

    def agent(self, id, name):
        self.add(Agent(id=id, name=name))

    def registration(self, id, phase_id, agent_id=None, number=None, status=0):
        self.add(Registration(id=id, number=number or f"on-{id}", opportunity_id=phase_id, agent_id=agent_id, status=status))

    def field(self, id, phase_id, title, order=1):
        self.add(RegistrationFieldConfiguration(id=id, opportunity_id=phase_id, title=title, display_order=order))

    def answer(self, registration_id, field_id, value):
        self.add(RegistrationMeta(object_id=registration_id, key=f"field_{field_id}", value=value))

    def link(self, registration_id, parent_registration_id):
        self.add(RegistrationMeta(object_id=registration_id, key=PREVIOUS_PHASE_META_KEY, value=str(parent_registration_id)))

    def file_field(self, id, phase_id, title, order=1):
        self.add(RegistrationFileConfiguration(id=id, opportunity_id=phase_id, title=title, display_order=order))

    def upload(self, id, registration_id, file_field_id, name):
        self.add(File(id=id, object_id=registration_id, object_type="Registration", grp=f"rfc_{file_field_id}", name=name))

    def rubric(self, config_id, phase_id, sections, criteria):
        self.add(EvaluationMethodConfiguration(id=config_id, opportunity_id=phase_id, type="technical"))
        self.add(
            EvaluationMethodConfigurationMeta(object_id=config_id, key="sections", value=json.dumps(sections)),
            EvaluationMethodConfigurationMeta(object_id=config_id, key="criteria", value=json.dumps(criteria)),
        )

    def evaluation(self, registration_id, data, result, user_id=1):
        payload = data if isinstance(data, str) else json.dumps(data)
        self.add(RegistrationEvaluation(registration_id=registration_id, user_id=user_id, evaluation_data=payload, result=result))


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite: batch fetches open sessions from worker threads."""
    engine = create_engine(f"sqlite:///{tmp_path / 'mapas.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def query_counter(engine):
    counter = QueryCounter()
    event.listen(engine, "before_cursor_execute", counter)
    yield counter
    event.remove(engine, "before_cursor_execute", counter)


@pytest.fixture
def mapas(session_factory):
    return MapasSeeder(session_factory)


@pytest.fixture
def cache():
    return SheetCache()


@pytest.fixture
def scenario(mapas):
    """
    Parent phase 100 with one child phase 101. Agent 7 registered 401 in the
    parent and 501 in the child; 501 links back to 401.
    """
    mapas.opportunity(100, "Edital Cultura Viva")
    mapas.opportunity(101, "Etapa de Habilitação", parent_id=100)
    mapas.agent(7, "Maria José da Silva")
    mapas.registration(401, 100, agent_id=7, number="on-401", status=10)
    mapas.registration(501, 101, agent_id=7, number="on-501", status=8)
    mapas.link(501, 401)
    mapas.field(1000, 100, "Projeto", order=1)
    mapas.field(1010, 101, "Nome", order=1)
    mapas.answer(401, 1000, "Dança")
    mapas.answer(501, 1010, "Maria")
    return mapas
