"""
Local cache store tests.
"""

import pytest

from copysensei.core.cache import LocalCacheStore, MemoryCache
from copysensei.models.chat import MessageRole
from copysensei.models.records import (
    DocumentRecord,
    GenerationRecord,
    MessageRecord,
    ProjectRecord,
    UserRecord,
)


@pytest.mark.asyncio
async def test_keys_are_scoped_per_user(memory_cache):
    alice = LocalCacheStore(memory_cache, scope="alice")
    bob = LocalCacheStore(memory_cache, scope="bob")

    await alice.set_user(UserRecord(id="alice", email="alice@example.com", credits=3))

    assert (await alice.get_user()).credits == 3
    assert await bob.get_user() is None
    assert await memory_cache.get("copysensei:alice:user") is not None


@pytest.mark.asyncio
async def test_records_are_stored_with_camel_case_keys(store, sample_project):
    await store.save_project(sample_project)

    raw = await store.backend.get(store._key(LocalCacheStore.PROJECTS))
    assert raw[0]["websiteUrl"] == "https://cornerbakery.example"
    assert raw[0]["toneOfVoice"] == "friendly"
    assert "website_url" not in raw[0]


@pytest.mark.asyncio
async def test_save_project_replaces_by_id(store, sample_project):
    await store.save_project(sample_project)
    await store.save_project(sample_project.model_copy(update={"custom_notes": "Gluten-free options"}))

    projects = await store.get_projects()
    assert len(projects) == 1
    assert projects[0].custom_notes == "Gluten-free options"


@pytest.mark.asyncio
async def test_update_user_credits(store):
    await store.set_user(UserRecord(id="u1", email="u1@example.com", credits=5))

    user = await store.update_user_credits(4)

    assert user.credits == 4
    assert (await store.get_user()).credits == 4


@pytest.mark.asyncio
async def test_update_credits_without_user_is_a_no_op(store):
    assert await store.update_user_credits(4) is None


@pytest.mark.asyncio
async def test_delete_project_cascades(store, sample_project):
    other = ProjectRecord(user_id=sample_project.user_id, name="Other")
    await store.save_project(sample_project)
    await store.save_project(other)
    await store.set_current_project_id(sample_project.id)

    for project in (sample_project, other):
        await store.save_message(MessageRecord(project_id=project.id, role=MessageRole.USER, content="hi"))
        await store.save_document(DocumentRecord(project_id=project.id, filename="brief.txt", content="x"))
        await store.save_generation(
            GenerationRecord(project_id=project.id, prompt="Write", generated_copy="Copy")
        )

    await store.delete_project(sample_project.id)

    assert [p.id for p in await store.get_projects()] == [other.id]
    assert [m.project_id for m in await store.get_messages()] == [other.id]
    assert [d.project_id for d in await store.get_documents()] == [other.id]
    assert [g.project_id for g in await store.get_generations()] == [other.id]
    assert await store.get_current_project_id() is None


@pytest.mark.asyncio
async def test_delete_project_keeps_other_selection(store, sample_project):
    other = ProjectRecord(user_id=sample_project.user_id, name="Other")
    await store.save_project(sample_project)
    await store.save_project(other)
    await store.set_current_project_id(other.id)

    await store.delete_project(sample_project.id)

    assert await store.get_current_project_id() == other.id


@pytest.mark.asyncio
async def test_messages_are_append_only_in_order(store, sample_project):
    for content in ("first", "second", "third"):
        await store.save_message(
            MessageRecord(project_id=sample_project.id, role=MessageRole.USER, content=content)
        )

    messages = await store.get_project_messages(sample_project.id)
    assert [m.content for m in messages] == ["first", "second", "third"]


@pytest.mark.asyncio
async def test_documents_filter_by_project(store, sample_project):
    document = DocumentRecord(project_id=sample_project.id, filename="brand.md", content="Warm and local")
    await store.save_document(document)
    await store.save_document(DocumentRecord(project_id="elsewhere", filename="x.md", content="x"))

    documents = await store.get_project_documents(sample_project.id)
    assert [d.id for d in documents] == [document.id]

    await store.delete_document(document.id)
    assert await store.get_project_documents(sample_project.id) == []


@pytest.mark.asyncio
async def test_memory_cache_returns_copies():
    backend = MemoryCache()
    await backend.set("k", {"items": [1]})

    value = await backend.get("k")
    value["items"].append(2)

    assert await backend.get("k") == {"items": [1]}
