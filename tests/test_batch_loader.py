"""Tests for the set-keyed batch fetches."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from sheets_service.cache_db import SheetCache
from sheets_service.core.exceptions import BatchFetchError
from sheets_service.schemas.sheets import Phase, RelevantPhaseSet
from sheets_service.services.batch_loader import BatchLoader


PHASES = RelevantPhaseSet(
    parent=Phase(id=100, name="Edital"),
    children=[Phase(id=101, name="Habilitação", parent_id=100), Phase(id=102, name="Mérito", parent_id=100)],
)


def _seed_applicants(mapas, count):
    mapas.opportunity(100, "Edital")
    mapas.opportunity(101, "Habilitação", parent_id=100)
    mapas.opportunity(102, "Mérito", parent_id=100)
    for phase_id, field_id, file_field_id in ((100, 1000, 2000), (101, 1010, 2010), (102, 1020, 2020)):
        mapas.field(field_id, phase_id, f"Campo {phase_id}")
        mapas.file_field(file_field_id, phase_id, f"Anexo {phase_id}")
    file_id = 1
    for n in range(count):
        agent_id = 10 + n
        mapas.agent(agent_id, f"Agente {n}")
        for offset, phase_id in enumerate((100, 101, 102)):
            registration_id = 1000 * (offset + 1) + n
            mapas.registration(registration_id, phase_id, agent_id=agent_id)
            mapas.answer(registration_id, 1000 + 10 * offset, f"resposta {n}")
            mapas.upload(file_id, registration_id, 2000 + 10 * offset, f"doc_{registration_id}.pdf")
            file_id += 1
            mapas.evaluation(registration_id, {"obs": "ok"}, "7")
        mapas.link(2000 + n, 1000 + n)


async def _load_everything(loader):
    registrations = await loader.fetch_registrations(PHASES.ids)
    return registrations, await loader.load_details(PHASES, registrations)


class TestOneQueryPerFetch:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("applicants", [1, 4])
    async def test_one_query_per_kind(self, mapas, session_factory, query_counter, applicants):
        _seed_applicants(mapas, applicants)
        query_counter.reset()
        loader = BatchLoader(session_factory, batch_ttl=0)

        registrations, data = await _load_everything(loader)

        assert query_counter.count == 5
        assert loader.queries == 5
        assert sum(len(v) for v in registrations.values()) == 3 * applicants
        assert len(data.parent_links) == applicants
        assert len(data.evaluation_rows) == 3 * applicants
        assert len(data.attachment_names) == 3 * applicants

    @pytest.mark.asyncio
    async def test_empty_ids_skip_database(self, session_factory, query_counter):
        loader = BatchLoader(session_factory, batch_ttl=0)
        assert await loader.fetch_parent_links([]) == {}
        assert await loader.fetch_field_values([], [1]) == {}
        assert query_counter.count == 0

    @pytest.mark.asyncio
    async def test_batch_rows_cached_when_enabled(self, mapas, session_factory, query_counter):
        _seed_applicants(mapas, 2)
        query_counter.reset()
        loader = BatchLoader(session_factory, cache=SheetCache(), batch_ttl=60)

        first = await loader.fetch_registrations([102, 100, 101])
        second = await loader.fetch_registrations([100, 101, 102, 100])

        assert first == second
        assert query_counter.count == 1


class TestGrouping:
    @pytest.mark.asyncio
    async def test_field_values_follow_display_order(self, mapas, session_factory):
        mapas.opportunity(100, "Edital")
        mapas.agent(1, "Ana")
        mapas.registration(401, 100, agent_id=1)
        mapas.field(3, 100, "Terceiro", order=3)
        mapas.field(1, 100, "Primeiro", order=1)
        mapas.field(2, 100, "Segundo", order=2)
        for field_id in (3, 1, 2):
            mapas.answer(401, field_id, f"valor {field_id}")

        values = await BatchLoader(session_factory, batch_ttl=0).fetch_field_values([401], [100])

        assert [v.label for v in values[401][100]] == ["Primeiro", "Segundo", "Terceiro"]

    @pytest.mark.asyncio
    async def test_latest_upload_per_field_wins(self, mapas, session_factory):
        mapas.opportunity(100, "Edital")
        mapas.registration(401, 100)
        mapas.file_field(20, 100, "Portfólio", order=2)
        mapas.file_field(10, 100, "RG", order=1)
        mapas.upload(5, 401, 20, "portfolio_v1.pdf")
        mapas.upload(9, 401, 20, "portfolio_v2.pdf")
        mapas.upload(7, 401, 10, "rg.pdf")

        names = await BatchLoader(session_factory, batch_ttl=0).fetch_attachment_names([401], [100])

        assert names[(401, 100)] == ["rg.pdf", "portfolio_v2.pdf"]

    @pytest.mark.asyncio
    async def test_last_evaluation_row_wins(self, mapas, session_factory):
        mapas.opportunity(100, "Edital")
        mapas.registration(401, 100)
        mapas.evaluation(401, {"obs": "primeiro"}, "5", user_id=1)
        mapas.evaluation(401, {"obs": "segundo"}, "8", user_id=2)

        rows = await BatchLoader(session_factory, batch_ttl=0).fetch_evaluation_rows([401], [100])

        assert rows[(401, 100)].result == "8"

    @pytest.mark.asyncio
    async def test_non_numeric_parent_link_ignored(self, mapas, session_factory):
        mapas.opportunity(100, "Edital")
        mapas.registration(401, 100)
        mapas.registration(402, 100)
        mapas.link(401, "abc")
        mapas.link(402, " 77 ")

        links = await BatchLoader(session_factory, batch_ttl=0).fetch_parent_links([401, 402])

        assert links == {402: 77}


class TestFailures:
    @pytest.mark.asyncio
    async def test_database_error_aborts(self):
        session = MagicMock()
        session.query.side_effect = OperationalError("SELECT 1", {}, Exception("connection timed out"))
        loader = BatchLoader(lambda: session, batch_ttl=0, parent_id=100)

        with pytest.raises(BatchFetchError) as exc:
            await loader.fetch_registrations([1, 2])
        assert exc.value.parent_id == 100
        session.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_malformed_ids_abort(self, session_factory):
        loader = BatchLoader(session_factory, batch_ttl=0)
        with pytest.raises(BatchFetchError):
            await loader.fetch_registrations(["1", "x"])


class TestResolvePhases:
    @pytest.mark.asyncio
    async def test_lookup_counted_once_then_cached(self, scenario, session_factory, query_counter):
        loader = BatchLoader(session_factory, SheetCache(), batch_ttl=0)
        query_counter.reset()

        first = await loader.resolve_phases(100)
        second = await loader.resolve_phases(100)

        assert first.ids == second.ids == [100, 101]
        assert loader.queries == 1
        assert query_counter.count == 1
