"""Tests for the in-memory PRD repository."""

import asyncio

import pytest

from beanstalk.crud.prd import InMemoryPrdRepository, PrdRepository
from beanstalk.schemas.epic import EpicGenerationResult, StoryStatus, UserStory
from beanstalk.schemas.prd import PrdContent, PrdCreate, PrdStatus, PrdUpdate
from beanstalk.services.epic_generator import epic_from_draft, new_story_id


@pytest.fixture
def prd_create(prd_payload):
    return PrdCreate(
        title=prd_payload["title"],
        content=PrdContent.model_validate(prd_payload["content"]),
        status=PrdStatus.COMPLETE,
        original_file_name="broker-call.txt",
    )


@pytest.fixture
def epic_batch(epics_payload):
    def build():
        drafts = EpicGenerationResult.model_validate(epics_payload).epics
        return [epic_from_draft(draft) for draft in drafts]
    return build


def csv_story():
    return UserStory(
        id=new_story_id(),
        title="Export to CSV",
        description="As a broker, I want a CSV export",
        acceptance_criteria=["File downloads"],
        estimated_story_points=3,
    )


class TestCrud:
    """Basic record lifecycle."""

    def test_implements_protocol(self, store):
        assert isinstance(store, PrdRepository)

    @pytest.mark.asyncio
    async def test_create_assigns_increasing_ids(self, store, prd_create):
        first = await store.create(prd_create)
        second = await store.create(prd_create)
        assert (first.id, second.id) == (1, 2)
        assert first.epics == []
        assert first.created_at == first.updated_at

    @pytest.mark.asyncio
    async def test_list_newest_first(self, store, prd_create):
        first = await store.create(prd_create)
        second = await store.create(prd_create)
        assert [prd.id for prd in await store.list_all()] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get(42) is None

    @pytest.mark.asyncio
    async def test_get_is_idempotent(self, store, prd_create):
        created = await store.create(prd_create)
        first = await store.get(created.id)
        second = await store.get(created.id)
        assert first.model_dump_json() == second.model_dump_json()

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, store, prd_create):
        created = await store.create(prd_create)
        created.content.core_features.clear()
        created.title = "Mutated"

        stored = await store.get(created.id)
        assert stored.title == prd_create.title
        assert len(stored.content.core_features) == 2

    @pytest.mark.asyncio
    async def test_update_only_touches_set_fields(self, store, prd_create):
        created = await store.create(prd_create)
        updated = await store.update(created.id, PrdUpdate(status=PrdStatus.IN_REVIEW))

        assert updated.status == PrdStatus.IN_REVIEW
        assert updated.title == prd_create.title
        assert updated.original_file_name == "broker-call.txt"
        assert updated.updated_at >= created.updated_at

    @pytest.mark.asyncio
    async def test_update_can_clear_file_name(self, store, prd_create):
        created = await store.create(prd_create)
        updated = await store.update(created.id, PrdUpdate(original_file_name=None))
        assert updated.original_file_name is None

    @pytest.mark.asyncio
    async def test_update_missing(self, store):
        assert await store.update(7, PrdUpdate(title="Nope")) is None

    @pytest.mark.asyncio
    async def test_delete(self, store, prd_create):
        created = await store.create(prd_create)
        assert await store.delete(created.id) is True
        assert await store.delete(created.id) is False
        assert await store.count() == 0


class TestEpics:
    """Epic batches, the epic index and story appends."""

    @pytest.mark.asyncio
    async def test_replace_indexes_new_batch(self, store, prd_create, epic_batch):
        prd = await store.create(prd_create)
        epics = epic_batch()
        updated = await store.replace_epics(prd.id, epics)

        assert [epic.id for epic in updated.epics] == [epic.id for epic in epics]
        found_prd_id, found = await store.find_epic(epics[1].id)
        assert found_prd_id == prd.id
        assert found.title == epics[1].title

    @pytest.mark.asyncio
    async def test_replace_drops_old_batch(self, store, prd_create, epic_batch):
        prd = await store.create(prd_create)
        old = epic_batch()
        await store.replace_epics(prd.id, old)
        new = epic_batch()[:2]
        await store.replace_epics(prd.id, new)

        stored = await store.get(prd.id)
        assert [epic.id for epic in stored.epics] == [epic.id for epic in new]
        for epic in old:
            assert await store.find_epic(epic.id) is None

    @pytest.mark.asyncio
    async def test_replace_missing_prd(self, store, epic_batch):
        assert await store.replace_epics(99, epic_batch()) is None

    @pytest.mark.asyncio
    async def test_append_story(self, store, prd_create, epic_batch):
        prd = await store.create(prd_create)
        epics = epic_batch()
        await store.replace_epics(prd.id, epics)
        target = epics[0]

        epic = await store.append_story(target.id, csv_story())

        assert len(epic.user_stories) == len(target.user_stories) + 1
        assert epic.user_stories[-1].status == StoryStatus.TODO
        stored = await store.get(prd.id)
        assert stored.epics[0].user_stories[-1].title == "Export to CSV"
        assert len(stored.epics[1].user_stories) == len(epics[1].user_stories)

    @pytest.mark.asyncio
    async def test_append_to_unknown_epic(self, store):
        assert await store.append_story("epic-missing", csv_story()) is None

    @pytest.mark.asyncio
    async def test_delete_epic(self, store, prd_create, epic_batch):
        prd = await store.create(prd_create)
        epics = epic_batch()
        await store.replace_epics(prd.id, epics)

        assert await store.delete_epic(epics[0].id) is True
        assert await store.delete_epic(epics[0].id) is False
        stored = await store.get(prd.id)
        assert [epic.id for epic in stored.epics] == [epic.id for epic in epics[1:]]

    @pytest.mark.asyncio
    async def test_deleting_prd_clears_epic_index(self, store, prd_create, epic_batch):
        prd = await store.create(prd_create)
        epics = epic_batch()
        await store.replace_epics(prd.id, epics)
        await store.delete(prd.id)

        for epic in epics:
            assert await store.find_epic(epic.id) is None

    @pytest.mark.asyncio
    async def test_concurrent_appends_are_all_kept(self, prd_create, epic_batch):
        store = InMemoryPrdRepository()
        prd = await store.create(prd_create)
        epics = epic_batch()
        await store.replace_epics(prd.id, epics)
        target = epics[0]

        await asyncio.gather(*(store.append_story(target.id, csv_story()) for _ in range(10)))

        _, epic = await store.find_epic(target.id)
        assert len(epic.user_stories) == len(target.user_stories) + 10
