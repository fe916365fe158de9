"""
API endpoint tests.
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from jose import jwt

from copysensei.agents.copywriter import copywriter
from copysensei.agents.researcher import researcher
from copysensei.core.config import settings
from copysensei.models.chat import MessageRole
from copysensei.models.records import DocumentRecord, MessageRecord, ProjectRecord
from copysensei.services.classifier import LOW_VALUE_ADVISORY
from copysensei.services.project_service import project_service

API = "/api/v1"


async def _create_project(client: AsyncClient, payload: dict) -> dict:
    response = await client.post(f"{API}/projects", json=payload)
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test health check endpoint."""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"


@pytest.mark.asyncio
async def test_root_endpoint(client: AsyncClient):
    """Test root endpoint."""
    response = await client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "name" in data
    assert "endpoints" in data


@pytest.mark.asyncio
async def test_me_grants_default_credits(client: AsyncClient, mock_user_id: str):
    response = await client.get(f"{API}/me")
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == mock_user_id
    assert data["credits"] == settings.default_credits
    assert data["projectCount"] == 0


@pytest.mark.asyncio
async def test_me_requires_token_in_production(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "environment", "production")
    response = await client.get(f"{API}/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_uses_bearer_token(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "environment", "production")
    token = jwt.encode(
        {"sub": "user-42", "email": "owner@cornerbakery.example"},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    response = await client.get(f"{API}/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["email"] == "owner@cornerbakery.example"


@pytest.mark.asyncio
async def test_create_project_posts_welcome_message(client: AsyncClient, sample_project_request: dict):
    project = await _create_project(client, sample_project_request)
    assert project["name"] == "Corner Bakery"
    assert project["toneOfVoice"] == "friendly"

    listing = (await client.get(f"{API}/projects")).json()
    assert [p["id"] for p in listing["projects"]] == [project["id"]]
    assert listing["current_project_id"] == project["id"]

    transcript = (await client.get(f"{API}/projects/{project['id']}/messages")).json()
    assert len(transcript["messages"]) == 1
    assert transcript["messages"][0]["role"] == "system"
    assert transcript["messages"][0]["align"] == "center"


@pytest.mark.asyncio
async def test_create_project_requires_fields(client: AsyncClient):
    response = await client.post(f"{API}/projects", json={"name": " ", "website_url": ""})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_update_tone_and_notes(client: AsyncClient, sample_project_request: dict):
    project = await _create_project(client, sample_project_request)

    response = await client.patch(
        f"{API}/projects/{project['id']}",
        json={"tone_of_voice": "playful", "custom_notes": "Mention the sourdough."},
    )
    assert response.status_code == 200
    assert response.json()["toneOfVoice"] == "playful"

    detail = (await client.get(f"{API}/projects/{project['id']}")).json()
    assert detail["project"]["customNotes"] == "Mention the sourdough."


@pytest.mark.asyncio
async def test_invalid_tone(client: AsyncClient, sample_project_request: dict):
    project = await _create_project(client, sample_project_request)
    response = await client.patch(f"{API}/projects/{project['id']}", json={"tone_of_voice": "grumpy"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_documents_lifecycle(client: AsyncClient, sample_project_request: dict):
    project = await _create_project(client, sample_project_request)

    response = await client.post(
        f"{API}/projects/{project['id']}/documents",
        json={"filename": "brand-voice.md", "content": "Warm, local, unfussy."},
    )
    assert response.status_code == 201
    document = response.json()
    assert document["fileSize"] == len("Warm, local, unfussy.")

    documents = (await client.get(f"{API}/projects/{project['id']}/documents")).json()["documents"]
    assert [d["id"] for d in documents] == [document["id"]]

    assert (await client.delete(f"{API}/documents/{document['id']}")).status_code == 200
    assert (await client.delete(f"{API}/documents/{document['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_refresh_research_stores_research_and_brief(
    client: AsyncClient, sample_project_request: dict, functions_stub, monkeypatch
):
    async def fake_strategy(research, project_name, tone=None):
        return f"Lead with freshness for {project_name}."

    monkeypatch.setattr(researcher, "synthesize_strategy", fake_strategy)
    project = await _create_project(client, sample_project_request)

    response = await client.post(f"{API}/projects/{project['id']}/research/refresh")

    assert response.status_code == 200
    data = response.json()
    assert data["research_data"] == functions_stub.research_data
    assert data["strategy_brief"] == "Lead with freshness for Corner Bakery."
    assert functions_stub.calls_to("fetch-research") == [
        {"websiteUrl": "https://cornerbakery.example", "projectName": "Corner Bakery"}
    ]

    detail = (await client.get(f"{API}/projects/{project['id']}")).json()
    assert detail["project"]["researchData"] == functions_stub.research_data


@pytest.mark.asyncio
async def test_refresh_research_remote_failure(client: AsyncClient, sample_project_request: dict, functions_stub):
    project = await _create_project(client, sample_project_request)
    functions_stub.fail_with = "Perplexity API error: 500"

    response = await client.post(f"{API}/projects/{project['id']}/research/refresh")
    assert response.status_code == 502


@pytest.mark.asyncio
async def test_chat_generation_charges_credit(client: AsyncClient, sample_project_request: dict, functions_stub):
    project = await _create_project(client, sample_project_request)

    response = await client.post(
        f"{API}/projects/{project['id']}/chat",
        json={"message": "Write a tagline for my bakery"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message_type"] == "copy_generation"
    assert data["credits_used"] == 1
    assert data["credits_remaining"] == settings.default_credits - 1
    assert data["response"] == functions_stub.generated_copy
    assert data["messages"][1]["footnote"] == "1 credit used"

    me = (await client.get(f"{API}/me")).json()
    assert me["credits"] == settings.default_credits - 1

    transcript = (await client.get(f"{API}/projects/{project['id']}/messages")).json()["messages"]
    assert [m["role"] for m in transcript] == ["system", "user", "assistant"]


@pytest.mark.asyncio
async def test_chat_small_talk_is_blocked(client: AsyncClient, sample_project_request: dict, functions_stub):
    project = await _create_project(client, sample_project_request)

    response = await client.post(f"{API}/projects/{project['id']}/chat", json={"message": "hello"})

    assert response.status_code == 422
    assert response.json()["detail"] == LOW_VALUE_ADVISORY
    assert functions_stub.calls_to("generate-copy") == []


@pytest.mark.asyncio
async def test_chat_without_credits(
    client: AsyncClient, sample_project_request: dict, test_db, mock_user_id: str
):
    project = await _create_project(client, sample_project_request)
    await project_service.set_credits(mock_user_id, 0, db=test_db)
    assert (await client.get(f"{API}/me")).json()["credits"] == 0

    response = await client.post(
        f"{API}/projects/{project['id']}/chat",
        json={"message": "Generate a slogan"},
    )

    assert response.status_code == 402
    transcript = (await client.get(f"{API}/projects/{project['id']}/messages")).json()["messages"]
    assert len(transcript) == 1


@pytest.mark.asyncio
async def test_chat_remote_failure(client: AsyncClient, sample_project_request: dict, functions_stub):
    project = await _create_project(client, sample_project_request)
    functions_stub.fail_with = "OpenAI API error: 503"

    response = await client.post(
        f"{API}/projects/{project['id']}/chat",
        json={"message": "Write a tagline for my bakery"},
    )

    assert response.status_code == 502
    assert (await client.get(f"{API}/me")).json()["credits"] == settings.default_credits


@pytest.mark.asyncio
async def test_chat_unknown_project(client: AsyncClient):
    response = await client.post(f"{API}/projects/missing/chat", json={"message": "Write a tagline"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_project(client: AsyncClient, sample_project_request: dict):
    project = await _create_project(client, sample_project_request)

    response = await client.delete(f"{API}/projects/{project['id']}")
    assert response.status_code == 200

    assert (await client.get(f"{API}/projects/{project['id']}")).status_code == 404
    listing = (await client.get(f"{API}/projects")).json()
    assert listing["projects"] == []
    assert listing["current_project_id"] is None


@pytest.mark.asyncio
async def test_select_project(client: AsyncClient, sample_project_request: dict):
    first = await _create_project(client, sample_project_request)
    await _create_project(client, {**sample_project_request, "name": "Second Shop"})

    response = await client.post(f"{API}/projects/{first['id']}/select")
    assert response.status_code == 200
    assert (await client.get(f"{API}/projects")).json()["current_project_id"] == first["id"]


@pytest.mark.asyncio
async def test_generate_copy_function(client: AsyncClient, monkeypatch):
    captured = {}

    async def fake_generate(context, messages=None, prompt=None):
        captured["tone"] = context.tone_of_voice
        captured["messages"] = messages
        return "Rise and shine with Corner Bakery."

    monkeypatch.setattr(copywriter, "generate", fake_generate)

    response = await client.post(
        f"{settings.functions_prefix}/generate-copy",
        json={
            "messages": [{"role": "user", "content": "Write a tagline"}],
            "context": {"toneOfVoice": "friendly"},
        },
    )

    assert response.status_code == 200
    assert response.json() == {"generatedCopy": "Rise and shine with Corner Bakery."}
    assert captured == {"tone": "friendly", "messages": [{"role": "user", "content": "Write a tagline"}]}


@pytest.mark.asyncio
async def test_generate_copy_function_failure(client: AsyncClient, monkeypatch):
    async def failing_generate(context, messages=None, prompt=None):
        raise RuntimeError("OpenAI API error: 429")

    monkeypatch.setattr(copywriter, "generate", failing_generate)

    response = await client.post(f"{settings.functions_prefix}/generate-copy", json={"prompt": "Write"})

    assert response.status_code == 500
    assert response.json() == {"error": "OpenAI API error: 429"}


@pytest.mark.asyncio
async def test_fetch_research_function_requires_url(client: AsyncClient):
    response = await client.post(f"{settings.functions_prefix}/fetch-research", json={"projectName": "x"})

    assert response.status_code == 500
    assert response.json() == {"error": "Website URL is required"}


@pytest.mark.asyncio
async def test_transcript_hydrates_latest_messages(client: AsyncClient, test_db, mock_user_id: str):
    project = ProjectRecord(user_id=mock_user_id, name="Corner Bakery", website_url="https://cornerbakery.example")
    await project_service.create_project(project, db=test_db)

    base = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
    for index in range(205):
        await project_service.add_message(
            MessageRecord(
                project_id=project.id,
                role=MessageRole.USER if index % 2 == 0 else MessageRole.ASSISTANT,
                content=f"m{index}",
                created_at=base + timedelta(seconds=index),
            ),
            db=test_db,
        )

    response = await client.get(f"{API}/projects/{project.id}/messages")

    assert response.status_code == 200
    contents = [m["content"] for m in response.json()["messages"]]
    assert len(contents) == 200
    assert contents[0] == "m5"
    assert contents[-1] == "m204"


@pytest.mark.asyncio
async def test_documents_hydrate_from_database(client: AsyncClient, test_db, mock_user_id: str):
    project = ProjectRecord(user_id=mock_user_id, name="Corner Bakery", website_url="https://cornerbakery.example")
    await project_service.create_project(project, db=test_db)
    document = DocumentRecord(project_id=project.id, filename="brand-voice.md", content="Warm, local.", file_size=12)
    await project_service.add_document(document, db=test_db)

    detail = (await client.get(f"{API}/projects/{project.id}")).json()
    assert [d["id"] for d in detail["documents"]] == [document.id]

    documents = (await client.get(f"{API}/projects/{project.id}/documents")).json()["documents"]
    assert [d["filename"] for d in documents] == ["brand-voice.md"]
